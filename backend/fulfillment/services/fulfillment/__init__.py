"""Fulfillment coordination: one transaction per fulfillment request."""
