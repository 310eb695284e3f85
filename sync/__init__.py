"""Booking synchronization: resolver, expander, engine, log, guard, trigger and scheduler."""
