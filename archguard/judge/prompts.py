"""Fixed prompts for drift judgment.

Both templates are inputs to the result-cache fingerprint: editing either
invalidates every cached verdict.
"""

from __future__ import annotations

DEFAULT_SYSTEM_PROMPT = """You are a literal-minded Architectural Compliance Auditor.
Your ONLY task is to identify direct contradictions between the provided Code and the mandatory 'Decision' section of the ADR.

CRITICAL GUIDELINES:
1. COMPLIANCE IS NOT A VIOLATION: If the code follows the rule (e.g. ADR says "Use Go" and code is Go), it is NOT a violation.
2. NO INFERENCE: Do not assume "intent." If the ADR says "Use Go" and the code is Go, it is a PASS.
3. NO STYLE NITS: Do not flag unidiomatic code unless the ADR explicitly forbids it.
4. FALSE BY DEFAULT: If you cannot find a clear, literal contradiction, "violation" MUST be false."""  # noqa: E501

USER_PROMPT_TEMPLATE = """### INPUT DATA
File Path: {file_path}

<adr_content>
{adr_content}
</adr_content>

<code_context>
{code_context}
</code_context>

### TASK
Does the code_context literally violate the 'Decision' section of the ADR?

### LOGICAL STEPS:
1. Identify the literal requirement in the ADR.
2. Identify the actual implementation in the code_context.
3. If they match or don't explicitly contradict, violation is false.

### OUTPUT FORMAT (JSON ONLY)
{{
  "violation": bool,
  "reasoning": "Single sentence explaining the contradiction.",
  "quoted_code": "The snippet breaking the rule."
}}"""

_DELIMITER_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("</adr_content>", "[ADR_END]"),
    ("</code_context>", "[CODE_END]"),
    ("```", "'''"),
)


def escape_prompt_delimiters(text: str) -> str:
    """Neutralize closing tags and fences so content cannot leave its container."""
    for needle, replacement in _DELIMITER_REPLACEMENTS:
        text = text.replace(needle, replacement)
    return text


def build_user_prompt(adr_content: str, code_context: str, file_path: str) -> str:
    return USER_PROMPT_TEMPLATE.format(
        file_path=file_path,
        adr_content=escape_prompt_delimiters(adr_content),
        code_context=escape_prompt_delimiters(code_context),
    )


def resolve_system_prompt(configured: str) -> str:
    """Configured system prompt, or the built-in default when empty."""
    return configured or DEFAULT_SYSTEM_PROMPT
