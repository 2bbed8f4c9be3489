"""
Dropp Gateway

Merchant-side Dropp payment integration service.
"""

__version__ = "0.1.0"
