"""Method descriptors and protocol introspection."""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, get_type_hints

from jrpc.rpc._common import ParamsStyle

# ---------------------------------------------------------------------------
# RpcMethodInfo
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RpcMethodInfo:
    """Metadata for a single RPC method of a generated client.

    Produced by :func:`rpc_methods` when introspecting a Protocol class, or
    built directly with :func:`method_info`.

    Attributes:
        name: Python attribute name of the generated method.
        wire_name: Method name sent in the request envelope.
        signature: Call signature of the generated method (without ``self``).
        result_type: Type the (possibly extracted) result is validated into;
            ``Any`` skips validation.
        result_field: Key unwrapped from an object result before validation,
            or ``None`` to return the whole result.
        params_style: Whether arguments are sent as a named object or a
            positional array.
        doc: The method's docstring, or ``None``.

    """

    name: str
    wire_name: str
    signature: inspect.Signature
    result_type: Any = Any
    result_field: str | None = None
    params_style: ParamsStyle = ParamsStyle.NAMED
    doc: str | None = None

    @property
    def param_names(self) -> tuple[str, ...]:
        """Parameter names in declaration order."""
        return tuple(self.signature.parameters)

    def build_params(self, args: tuple[object, ...], kwargs: Mapping[str, object]) -> object:
        """Bind call arguments to the signature and build the ``params`` member.

        Returns:
            A ``dict`` keyed by parameter name (``NAMED``), or a ``list`` in
            declaration order (``POSITIONAL``).

        Raises:
            TypeError: If the arguments do not match the signature.

        """
        bound = self.signature.bind(*args, **kwargs)
        bound.apply_defaults()
        if self.params_style is ParamsStyle.POSITIONAL:
            return [bound.arguments[name] for name in self.param_names]
        return dict(bound.arguments)


def _format_signature(info: RpcMethodInfo) -> str:
    """Format ``name(a: int, b: str = 'x') -> T`` for help text and errors."""
    params = ", ".join(str(p) for p in info.signature.parameters.values())
    result = "Any" if info.result_type is Any else getattr(info.result_type, "__name__", repr(info.result_type))
    return f"{info.name}({params}) -> {result}"


# ---------------------------------------------------------------------------
# Descriptor construction
# ---------------------------------------------------------------------------

_RPC_OPTIONS_ATTR = "__jrpc_options__"

_UNSUPPORTED_PARAM_KINDS: dict[int, str] = {
    inspect.Parameter.POSITIONAL_ONLY: "positional-only (before '/')",
    inspect.Parameter.VAR_POSITIONAL: "*args",
    inspect.Parameter.VAR_KEYWORD: "**kwargs",
}


@dataclass(frozen=True)
class _RpcOptions:
    wire_name: str | None = None
    result_field: str | None = None
    params_style: ParamsStyle = ParamsStyle.NAMED


def rpc_method[F: Callable[..., Any]](
    wire_name: str | None = None,
    *,
    result_field: str | None = None,
    params_style: ParamsStyle = ParamsStyle.NAMED,
) -> Callable[[F], F]:
    """Override the descriptor defaults of a Protocol method.

    Example::

        class Auth(Protocol):
            @rpc_method("auth.login", result_field="token")
            def login(self, user: str, password: str) -> str: ...

    Args:
        wire_name: Method name sent on the wire (defaults to the Python name).
        result_field: Key to unwrap from an object result.
        params_style: Send arguments as a named object or a positional array.

    """
    options = _RpcOptions(wire_name=wire_name, result_field=result_field, params_style=params_style)

    def decorator(fn: F) -> F:
        setattr(fn, _RPC_OPTIONS_ATTR, options)
        return fn

    return decorator


def _validate_descriptor(info: RpcMethodInfo, owner: str) -> None:
    """Reject descriptors that cannot produce a working method.

    Raises:
        ValueError: On an invalid name, empty wire name, or empty result field.
        TypeError: On parameters that cannot be keyword-passed.

    """
    if not info.name.isidentifier() or info.name.startswith("_"):
        raise ValueError(f"{owner}: invalid method name {info.name!r}")
    if not info.wire_name:
        raise ValueError(f"{owner}.{info.name}: wire name must not be empty")
    if info.result_field is not None and not info.result_field:
        raise ValueError(f"{owner}.{info.name}: result_field must not be empty")
    errors: list[str] = []
    for name, param in info.signature.parameters.items():
        label = _UNSUPPORTED_PARAM_KINDS.get(param.kind)
        if label is not None:
            errors.append(f"  - '{name}' is {label}")
    if errors:
        detail = "\n".join(errors)
        raise TypeError(
            f"{owner}.{info.name}() has parameters incompatible"
            f" with the RPC wire protocol (all parameters must be keyword-passable):\n{detail}"
        )


def method_info(
    name: str,
    params: Sequence[str | tuple[str, Any]] = (),
    *,
    result_type: Any = Any,
    wire_name: str | None = None,
    result_field: str | None = None,
    params_style: ParamsStyle = ParamsStyle.NAMED,
    defaults: Mapping[str, Any] | None = None,
    doc: str | None = None,
) -> RpcMethodInfo:
    """Build a method descriptor without a Protocol class.

    Args:
        name: Python attribute name of the generated method.
        params: Parameter names, or ``(name, type)`` pairs.
        result_type: Type the result is validated into.
        wire_name: Method name sent on the wire (defaults to *name*).
        result_field: Key to unwrap from an object result.
        params_style: Send arguments as a named object or a positional array.
        defaults: Default values for trailing parameters.
        doc: Docstring attached to the generated method.

    Raises:
        ValueError: On duplicate parameter names or an invalid descriptor.

    """
    defaults = dict(defaults or {})
    parameters: list[inspect.Parameter] = []
    seen: set[str] = set()
    for entry in params:
        pname, ptype = (entry, Any) if isinstance(entry, str) else entry
        if pname in seen:
            raise ValueError(f"{name}: duplicate parameter {pname!r}")
        seen.add(pname)
        default = defaults.get(pname, inspect.Parameter.empty)
        if default is inspect.Parameter.empty and parameters and parameters[-1].default is not inspect.Parameter.empty:
            raise ValueError(f"{name}: non-default parameter {pname!r} follows a parameter with a default")
        parameters.append(
            inspect.Parameter(pname, inspect.Parameter.POSITIONAL_OR_KEYWORD, default=default, annotation=ptype)
        )
    unknown = set(defaults) - seen
    if unknown:
        raise ValueError(f"{name}: defaults for unknown parameters {sorted(unknown)}")
    signature = inspect.Signature(parameters, return_annotation=result_type)
    info = RpcMethodInfo(
        name=name,
        wire_name=name if wire_name is None else wire_name,
        signature=signature,
        result_type=result_type,
        result_field=result_field,
        params_style=params_style,
        doc=doc,
    )
    _validate_descriptor(info, "method_info")
    return info


def method_table(methods: Iterable[RpcMethodInfo]) -> Mapping[str, RpcMethodInfo]:
    """Index descriptors by name, rejecting duplicates.

    Raises:
        ValueError: If two descriptors share a name.

    """
    table: dict[str, RpcMethodInfo] = {}
    for info in methods:
        if info.name in table:
            raise ValueError(f"Duplicate RPC method {info.name!r}")
        table[info.name] = info
    return MappingProxyType(table)


# ---------------------------------------------------------------------------
# Protocol introspection
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=64)
def rpc_methods(protocol: type) -> Mapping[str, RpcMethodInfo]:
    """Introspect a Protocol class and return RpcMethodInfo for each method.

    Skips underscore-prefixed names and non-callable attributes.  Options set
    with :func:`rpc_method` override the wire name, result field and params
    style.

    Raises:
        TypeError: If type hints cannot be resolved or a method has
            parameters that cannot be keyword-passed.

    """
    result: dict[str, RpcMethodInfo] = {}

    for name in dir(protocol):
        if name.startswith("_"):
            continue
        attr = getattr(protocol, name, None)
        if attr is None or not callable(attr):
            continue

        try:
            hints = get_type_hints(attr, include_extras=True)
        except (NameError, AttributeError) as exc:
            raise TypeError(f"Failed to resolve type hints for {protocol.__name__}.{name}(): {exc}") from exc

        sig = inspect.signature(attr)
        parameters = [
            p.replace(annotation=hints.get(pname, Any)) for pname, p in sig.parameters.items() if pname != "self"
        ]
        result_type = hints.get("return", Any)
        if result_type is type(None):
            result_type = None
        signature = sig.replace(parameters=parameters, return_annotation=result_type)

        options: _RpcOptions = getattr(attr, _RPC_OPTIONS_ATTR, None) or _RpcOptions()
        info = RpcMethodInfo(
            name=name,
            wire_name=name if options.wire_name is None else options.wire_name,
            signature=signature,
            result_type=result_type,
            result_field=options.result_field,
            params_style=options.params_style,
            doc=inspect.getdoc(attr),
        )
        _validate_descriptor(info, protocol.__name__)
        result[name] = info

    return method_table(result.values())
