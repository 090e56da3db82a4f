"""
Cosense Package

Provides the cookie-authenticated Cosense client, its URL builders, cookie
jar, data models and the browser automation layer it drives.
"""

from .client import CosenseClient
from .cookies import CookieJar
from .models import ActionResult, Page, PageList, Project
from .routes import Routes, build_url

__all__ = [
    "CosenseClient",
    "CookieJar",
    "ActionResult",
    "Page",
    "PageList",
    "Project",
    "Routes",
    "build_url",
]
