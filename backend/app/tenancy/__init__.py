"Tenancy utilities: actor identity, role predicates, authorization and scoping helpers."

from .context import AuthenticatedActor  # noqa: F401
from .middleware import RequestContextMiddleware  # noqa: F401
