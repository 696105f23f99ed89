"""
Feature-flag integration demo for a financial-services product.

- finflags.server: Context Store API (server-side flag evaluation)
- finflags.presenter: Context Presenter console (client-side evaluation + display)
"""

__version__ = "1.0.0"
