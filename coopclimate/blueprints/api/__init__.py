from coopclimate.blueprints.api.farms import farms_api

__all__ = ["farms_api"]
