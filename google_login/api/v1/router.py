"""Router aggregator v1: registers v1 routes on the main app."""


def include_v1_routes(app):
    """Register v1 routers on the FastAPI app.

    Auth routes are mounted at the root because Google redirects to the
    registered callback path (`/auth/google/callback`).
    """
    from .endpoints import auth as auth_module
    app.include_router(auth_module.router)
    return None
