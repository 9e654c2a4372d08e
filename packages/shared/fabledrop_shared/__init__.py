"""Schemas shared by the FableDrop server, relay and tests."""
