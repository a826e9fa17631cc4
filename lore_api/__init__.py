"""
WorldLore Geo API.

FastAPI backend serving historical boundary and natural feature layers.

Run with:
    uvicorn lore_api.main:app --reload --port 8000
"""

__version__ = "0.1.0"
