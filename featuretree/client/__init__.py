from featuretree.client.status_client import StatusClient, parse_status_mapping

__all__ = ["StatusClient", "parse_status_mapping"]
