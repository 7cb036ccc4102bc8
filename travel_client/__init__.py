"""Client-side state synchronization for the travel guide app."""

from travel_client.app import TravelClient, build_client, configure_logging, validate_environment

__all__ = ["TravelClient", "build_client", "configure_logging", "validate_environment"]
