"""Marketplace HTTP API: FastAPI routers, request/response schemas and error mapping."""
