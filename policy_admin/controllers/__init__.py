from .applications_controller import ApplicationsController
from .policies_controller import PoliciesController

__all__ = ["ApplicationsController", "PoliciesController"]
