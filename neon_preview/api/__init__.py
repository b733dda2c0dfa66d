"""
FastAPI REST Endpoints
======================

REST API endpoints for HTTP access to neon preview rendering.

Endpoints:
- POST /api/generate-product-image: Render a neon sign preview as a data URL
- GET /api/fonts: List the supported font ids
- GET /api/health: Health check endpoint
"""
