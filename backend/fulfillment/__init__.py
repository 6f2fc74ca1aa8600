"""Fulfillment transaction engine: document numbering and atomic stock transfers."""
