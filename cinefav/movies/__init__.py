"""
Movies package: catalog search and the favorites collection.

The package exposes the ``/movies`` routes.  The pieces underneath can
be used on their own: ``omdb_service`` talks to the catalog provider,
``store`` owns the favorites file, and ``search`` joins the two.
"""

from .router import router as movies_router  # noqa: F401
