"""
Neon Preview Renderer
=====================

HTTP service that turns a neon sign description (text, font, colour,
plexiglass style, alignment) into a raster preview image through HTML
rendering and headless browser capture.

This package provides:
- FastAPI REST endpoints for HTTP access
- Jinja2 templates for the neon sign markup and stylesheet
- Browser automation with Playwright
"""

__version__ = "1.0.0"
__author__ = "Neon Preview Team"
