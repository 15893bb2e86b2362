"""
Adapter implementations for the flight scheduler.

Adapters are concrete implementations of the port interfaces.
They handle the specifics of reference-data sources and flight storage.
"""
