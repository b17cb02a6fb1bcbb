"""Lifecycle check: run create, read, delete and read again against a live server.

Confirms that a vRA server honours the catalog source entitlement contract:
the created record is found by catalog source, its definition echoes the
declaration, repeated reads agree, and a delete makes it disappear.

Entry point: ``vra_entitlements.probe.runner.run_probe()``
"""
