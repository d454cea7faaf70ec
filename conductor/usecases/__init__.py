"""Use-case layer for command handlers.

Each module coordinates domain objects and ports without performing transport
I/O directly; handlers return a terminal ``CommandResult`` to the router.
"""
