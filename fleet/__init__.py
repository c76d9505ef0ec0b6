"""Boats, Loads and Users REST service with a Boat/Load assignment engine."""
