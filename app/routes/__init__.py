from app.routes.commissions import router as commissions_router

__all__ = [
    'commissions_router',
]
