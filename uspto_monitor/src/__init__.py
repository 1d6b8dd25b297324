"""USPTO matter monitor.

Polls the trademark and patent registries for every registered matter,
decides which documents are new since the last recorded date, and runs the
storage, email and Lawmatics side effects for them. ``processing`` holds the
core, ``connectors`` the external clients, ``services`` the scheduler and
controller, and ``api`` the HTTP surface.
"""

__all__ = []
