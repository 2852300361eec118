"""Event store adapters.

A small abstraction layer so the gateway can run against an in-process store
in development and tests, and against a shared SQL database in production,
without changing the services that use it.
"""
