from fulfillment.api.v1.sequences.routes import router

__all__ = ["router"]
