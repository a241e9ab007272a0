"""Runnable examples for distributed_channel: a threaded demo and a FastAPI app."""
