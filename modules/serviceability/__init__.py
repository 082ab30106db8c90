from .serviceability_controller import serviceability_router
