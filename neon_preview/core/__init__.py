"""
Core Business Logic
===================

Font lookup, neon sign normalisation and the render pipeline.

Components:
- fonts: Font id to font family lookup table
- neon: Request normalisation and sign rendering
- rendering: HTML generation and browser capture
"""
