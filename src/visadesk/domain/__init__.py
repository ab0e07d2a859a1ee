"""Domain layer for visadesk application."""

_SERVICES = {
    "AuditService": "visadesk.domain.audit",
    "BillingService": "visadesk.domain.billing",
    "ClientService": "visadesk.domain.client",
    "OrderService": "visadesk.domain.order",
    "PassportService": "visadesk.domain.passport",
    "ProductService": "visadesk.domain.product",
}

__all__ = list(_SERVICES)


# Services import the database layer, which imports domain entities, so
# they are resolved lazily to keep the package import acyclic
def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
