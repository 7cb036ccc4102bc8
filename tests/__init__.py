"""Test suite for the travel client; helpers import as ``tests.travel_client``."""
