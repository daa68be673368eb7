"""
FastAPI routers for the form design engine.
"""

from formdesign.routers import builder, designs, preview

__all__ = ["designs", "builder", "preview"]
