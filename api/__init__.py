"""
HTTP API Module

FastAPI application exposing the query pipeline:
- POST /query: buffered answer
- POST /query/stream: Server-Sent Events stream
- GET /health: backend status

The actor identity arrives in the X-Actor-Id header, set by the
authentication layer in front of this service.
"""
