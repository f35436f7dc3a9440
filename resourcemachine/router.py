"""Trie router matching request paths to routes."""

from typing import Any, Dict, List, Optional, Tuple

from .models import HTTPMethod


def split_path(path: str) -> List[str]:
    return [s for s in path.split('/') if s]


class RouteNode:
    """A node in the route trie structure.

    Each node represents a path segment and can have:
    - static_children: Dict mapping exact segment strings to child nodes
    - param_child: Single child node for path parameters (e.g., {id})
    - handlers: Dict mapping HTTP methods to (handler, parameter names)

    Parameter names belong to the route, not to the trie, so ``/users/{id}``
    and ``/users/{user_id}/posts`` share one parameter node.
    """

    def __init__(self):
        self.static_children: Dict[str, "RouteNode"] = {}
        self.param_child: Optional["RouteNode"] = None
        self.handlers: Dict[HTTPMethod, Tuple[Any, Tuple[str, ...]]] = {}

    def add_route(self, segments: List[str], method: HTTPMethod, handler: Any,
                  param_names: Tuple[str, ...] = ()) -> None:
        """Add a route to the trie.

        Raises:
            ValueError: if a handler is already registered for the method at
                this path, or if a template repeats a parameter name.
        """
        if not segments:
            if method in self.handlers:
                raise ValueError(f"A {method.value} handler is already registered for this path")
            self.handlers[method] = (handler, param_names)
            return

        segment = segments[0]
        remaining = segments[1:]

        if segment.startswith('{') and segment.endswith('}'):
            param_name = segment[1:-1].strip()
            if not param_name:
                raise ValueError("Path parameter name must not be empty")
            if param_name in param_names:
                raise ValueError(f"Path parameter '{{{param_name}}}' appears more than once")
            if self.param_child is None:
                self.param_child = RouteNode()
            self.param_child.add_route(remaining, method, handler, param_names + (param_name,))
        else:
            if segment not in self.static_children:
                self.static_children[segment] = RouteNode()
            self.static_children[segment].add_route(remaining, method, handler, param_names)

    def match(self, segments: List[str], method: HTTPMethod,
              values: Tuple[str, ...] = ()) -> Optional[Tuple[Any, Dict[str, str]]]:
        """Match a path against the trie.

        Returns:
            Tuple of (handler, path_params) if matched, None otherwise
        """
        if not segments:
            entry = self.handlers.get(method)
            if entry is None:
                return None
            handler, param_names = entry
            return (handler, dict(zip(param_names, values)))

        segment = segments[0]
        remaining = segments[1:]

        # Static segments are more specific than parameters
        if segment in self.static_children:
            result = self.static_children[segment].match(remaining, method, values)
            if result:
                return result

        if self.param_child:
            return self.param_child.match(remaining, method, values + (segment,))

        return None

    def has_path(self, segments: List[str]) -> bool:
        """Check if any route exists at this path (regardless of method)."""
        if not segments:
            return bool(self.handlers)

        segment = segments[0]
        remaining = segments[1:]

        if segment in self.static_children:
            if self.static_children[segment].has_path(remaining):
                return True

        if self.param_child:
            if self.param_child.has_path(remaining):
                return True

        return False


class Router:
    """Routing table keyed by (HTTP method, path template)."""

    def __init__(self):
        self._route_tree = RouteNode()

    def add_route(self, method: HTTPMethod, path: str, handler: Any) -> None:
        """Register a handler for a method and a path template such as ``/foo/{id}``."""
        self._route_tree.add_route(split_path(path), method, handler)

    def match_route(self, path: str, method: HTTPMethod) -> Optional[Tuple[Any, Dict[str, str]]]:
        """Match a route using the trie structure.

        Args:
            path: Request path (e.g., "/api/users/123")
            method: HTTP method

        Returns:
            Tuple of (handler, path_params) if matched, None otherwise
        """
        return self._route_tree.match(split_path(path), method)

    def has_path(self, path: str) -> bool:
        """Check if any route exists at the given path (regardless of method)."""
        return self._route_tree.has_path(split_path(path))

    def get_methods_for_path(self, path: str) -> List[HTTPMethod]:
        """Get all HTTP methods that have registered routes at this path, sorted by name."""
        segments = split_path(path)
        methods = [method for method in HTTPMethod if self._route_tree.match(segments, method)]
        return sorted(methods, key=lambda m: m.value)
