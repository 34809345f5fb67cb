from bizmap.relay.app import create_app

__all__ = ["create_app"]
