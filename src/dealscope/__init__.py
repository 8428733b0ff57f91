"""
DealScope - Entity resolution and payload normalization for deal browsing.

Turns the shape-shifting JSON of a business-intelligence backend into one
canonical view-model, and decides whether referenced entities should be
routed as companies or investors.
"""

__version__ = "0.1.0"
__app_name__ = "dealscope"
