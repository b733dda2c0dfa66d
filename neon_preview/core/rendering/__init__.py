"""
Rendering Module
===============

HTML generation and image capture with browser automation.

Components:
- html_generator: Build the neon sign markup, stylesheet and document
- image_generator: Browser automation for screenshot capture
- templates: Jinja2 templates for the sign and the page
"""
