"""
=============================================================================
URL ROUTER
=============================================================================

Maps request paths to resource classes.

    router = Router()
    router.add("/", Home)
    router.add("/users", UserList)
    router.add("/users/:name", User)

    router.match("/users/ada")
        → RouteMatch(route=<User>, params={"name": "ada"})

The router only looks at the PATH. Choosing the method to call (GET,
POST, ...) is the resource's job, which is why an unsupported verb on a
known path is a 405 rather than a 404.

=============================================================================
PATTERN SYNTAX
=============================================================================

1. STATIC:   /users          exact match
2. PARAM:    /users/:name    one segment  → {"name": "ada"}
3. WILDCARD: /files/*path    the rest     → {"path": "docs/a.pdf"}
                             (must be the last segment)

Patterns are compiled once, at registration, to anchored regexes:

    /users/:name/posts/:post_id
        ↓
    ^/users/(?P<name>[^/]+)/posts/(?P<post_id>[^/]+)$

=============================================================================
MATCHING ORDER
=============================================================================

First registered, first matched. Register the specific before the
general:

    router.add("/users/me", CurrentUser)    # before...
    router.add("/users/:name", User)        # ...this

Routes added through a group() count too: they join the parent's list
at the moment they are added, so registration order holds across groups.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import quote
import logging
import re

logger = logging.getLogger(__name__)


# A parameter name must be usable as a regex group name
_PARAM_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class Route:
    """
    A registered pattern → resource binding.

    Attributes:
        path: Pattern as registered, prefix included ("/users/:name")
        resource: Resource class handling the path
        name: Optional name for url_for()
        meta: Free-form metadata for middleware
    """

    path: str
    resource: type
    name: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)

    @property
    def param_names(self) -> List[str]:
        return list(self._param_names)

    @property
    def methods(self) -> List[str]:
        """Verbs the resource answers, for listings and Allow headers."""
        allowed = getattr(self.resource, "allowed_methods", None)
        return list(allowed()) if allowed else []


@dataclass
class RouteMatch:
    """A successful match: the route and the captured path parameters."""

    route: Route
    params: Dict[str, str]

    @property
    def resource(self) -> type:
        return self.route.resource


def compile_pattern(path: str) -> tuple[re.Pattern, List[str]]:
    """
    Compile a route pattern to a regex.

    Args:
        path: e.g. "/users/:name/files/*rest"

    Returns:
        (compiled regex, parameter names in order)

    Raises:
        ValueError: For empty or duplicate parameter names, or a
                    wildcard that isn't the last segment.
    """
    param_names: List[str] = []
    regex_parts = ["^"]

    segments = [s for s in path.split("/") if s]
    for index, segment in enumerate(segments):
        regex_parts.append("/")

        if segment[0] in ":*":
            name = segment[1:]
            if segment[0] == "*" and not name:
                name = "wildcard"
            if not _PARAM_NAME.match(name):
                raise ValueError(f"Invalid parameter name {segment!r} in {path!r}")
            if name in param_names:
                raise ValueError(f"Duplicate parameter {name!r} in {path!r}")
            param_names.append(name)

            if segment[0] == ":":
                regex_parts.append(f"(?P<{name}>[^/]+)")
            else:
                if index != len(segments) - 1:
                    raise ValueError(f"Wildcard must be the last segment in {path!r}")
                regex_parts.append(f"(?P<{name}>.*)")
        else:
            regex_parts.append(re.escape(segment))

    if not segments:
        regex_parts.append("/")

    regex_parts.append("$")
    return re.compile("".join(regex_parts)), param_names


def normalize_path(path: str) -> str:
    """Leading slash, no trailing slash ("/" stays "/")."""
    stripped = path.strip("/")
    return "/" + stripped if stripped else "/"


class Router:
    """
    Resource router with ":name" path parameters.

    Registration styles:

        # Classes
        router.add("/users/:name", User, name="user")

        @router.resource("/users")
        class UserList(Resource):
            def GET(self, request): ...

        # Plain functions (wrapped in a generated resource)
        @router.get("/health")
        def health(request):
            return {"status": "ok"}

    Groups share a prefix:

        api = router.group("/api/v1")
        api.add("/users", UserList)      # /api/v1/users
    """

    def __init__(self, prefix: str = "", parent: Optional["Router"] = None):
        """
        Args:
            prefix: Prepended to every pattern registered on this router.
            parent: Router this one is a group of (set by group()).
        """
        self.prefix = prefix.rstrip("/")
        self._parent = parent
        self._routes: List[Route] = []
        self._named_routes: Dict[str, Route] = {}

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add(self, path: str, resource: type, name: Optional[str] = None, **meta: Any) -> Route:
        """
        Register a resource class under a pattern.

        Args:
            path: Pattern, e.g. "/users/:name"
            resource: Resource subclass
            name: Optional route name for url_for()
            **meta: Stored on route.meta

        Returns:
            The new Route
        """
        full_path = normalize_path(self.prefix + "/" + path.lstrip("/"))
        pattern, param_names = compile_pattern(full_path)

        route = Route(
            path=full_path,
            resource=resource,
            name=name,
            meta=meta,
            _pattern=pattern,
            _param_names=param_names,
        )
        self._register(route)
        logger.debug(f"Registered {full_path} → {getattr(resource, '__name__', resource)}")
        return route

    def _register(self, route: Route) -> None:
        """Append route here and to every parent, keeping one global order."""
        lineage = self._lineage()
        if route.name:
            for router in lineage:
                if route.name in router._named_routes:
                    raise ValueError(f"Route name already registered: {route.name!r}")
        for router in lineage:
            router._routes.append(route)
            if route.name:
                router._named_routes[route.name] = route

    def _lineage(self) -> List["Router"]:
        """This router followed by its parents, root last."""
        routers = []
        router: Optional[Router] = self
        while router is not None:
            routers.append(router)
            router = router._parent
        return routers

    def resource(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[type], type]:
        """
        Class decorator form of add().

            @router.resource("/users/:name")
            class User(Resource):
                ...
        """
        def decorator(cls: type) -> type:
            self.add(path, cls, name, **meta)
            return cls
        return decorator

    def route(
        self,
        path: str,
        methods: Iterable[str] = ("GET",),
        name: Optional[str] = None,
    ) -> Callable[[Callable], Callable]:
        """
        Register a plain function for one or more verbs.

        Functions registered on the same pattern share one generated
        resource, so separate GET and POST functions for "/users" both
        work and a DELETE to "/users" gets a proper 405.
        """
        def decorator(func: Callable) -> Callable:
            resource = self._function_resource(path, name)
            for method in methods:
                resource.bind(method, func)
            return func
        return decorator

    def get(self, path: str, name: Optional[str] = None):
        return self.route(path, ("GET",), name)

    def post(self, path: str, name: Optional[str] = None):
        return self.route(path, ("POST",), name)

    def put(self, path: str, name: Optional[str] = None):
        return self.route(path, ("PUT",), name)

    def delete(self, path: str, name: Optional[str] = None):
        return self.route(path, ("DELETE",), name)

    def patch(self, path: str, name: Optional[str] = None):
        return self.route(path, ("PATCH",), name)

    def _function_resource(self, path: str, name: Optional[str]) -> type:
        """Find or create the generated resource for a function route."""
        from ..resource import FunctionResource

        full_path = normalize_path(self.prefix + "/" + path.lstrip("/"))
        lineage = self._lineage()
        for route in lineage[-1]._routes:
            if route.path == full_path and getattr(route.resource, "generated", False):
                if name and route.name is None:
                    route.name = name
                    for router in lineage:
                        router._named_routes[name] = route
                return route.resource

        resource = FunctionResource.for_path(full_path)
        self.add(path, resource, name)
        return resource

    # =========================================================================
    # COMPOSITION
    # =========================================================================

    def group(self, prefix: str) -> "Router":
        """
        A child router whose patterns all start with prefix.

        Its routes are also registered on this router, in the order they
        are added, so a group never jumps ahead of or behind its parent's
        routes.
        """
        return Router(self.prefix + "/" + prefix.strip("/"), parent=self)

    def include(self, prefix: str, router: "Router") -> None:
        """
        Mount another router's routes under prefix.

        The routes are re-registered on this router so their patterns are
        recompiled with the combined prefix.
        """
        for route in router.routes():
            relative = route.path[len(router.prefix):] if router.prefix else route.path
            self.add(prefix.rstrip("/") + "/" + relative.lstrip("/"),
                     route.resource, route.name, **route.meta)

    # =========================================================================
    # MATCHING
    # =========================================================================

    def match(self, path: str) -> Optional[RouteMatch]:
        """
        Find the resource for a path.

        Args:
            path: Request path (query string already removed)

        Returns:
            RouteMatch, or None if no pattern matches
        """
        path = normalize_path(path)

        for route in self._routes:
            found = route._pattern.match(path) if route._pattern else None
            if found:
                return RouteMatch(route=route, params=found.groupdict())

        return None

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def url_for(self, name: str, **params: Any) -> str:
        """
        Build the path of a named route.

            router.add("/users/:name", User, name="user")
            router.url_for("user", name="ada lovelace")  # "/users/ada%20lovelace"

        Raises:
            KeyError: Unknown route name or missing parameter
        """
        route = self._named_routes.get(name)
        if route is None:
            raise KeyError(f"No route named {name!r}")

        parts = []
        for segment in route.path.split("/"):
            if segment and segment[0] in ":*":
                param = segment[1:] or "wildcard"
                if param not in params:
                    raise KeyError(f"Missing parameter {param!r} for route {name!r}")
                safe = "/" if segment[0] == "*" else ""
                parts.append(quote(str(params[param]), safe=safe))
            else:
                parts.append(segment)
        return "/".join(parts) or "/"

    def routes(self) -> List[Route]:
        """All routes, groups included, in matching order."""
        return list(self._routes)

    def describe(self) -> str:
        """
        A text table of the registered routes, e.g.:

            GET, HEAD, OPTIONS           /users/:name      User
            GET, HEAD, OPTIONS, POST     /users            UserList
        """
        lines = []
        for route in self.routes():
            methods = ", ".join(route.methods) or "-"
            resource_name = getattr(route.resource, "__name__", str(route.resource))
            lines.append(f"  {methods:28} {route.path:30} {resource_name}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.routes())
