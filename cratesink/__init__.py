"""
cratesink: schema evolution for change-event sinks into CrateDB.
"""

__version__ = "0.1.0"
