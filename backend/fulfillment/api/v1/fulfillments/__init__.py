from fulfillment.api.v1.fulfillments.routes import router

__all__ = ["router"]
