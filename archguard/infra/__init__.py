"""Infrastructure layer package.

Implements Port interfaces with concrete adapters (filesystem cache, git).
The analysis core depends on the ports, not on this package.
"""
