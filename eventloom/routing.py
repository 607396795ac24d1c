import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from functools import singledispatch
from typing import Any, TypeVar

T = TypeVar("T")


class DefaultHandler(ABC):
    """Base handler for event types without a registered applier."""

    __slots__ = ("operation_name",)

    def __init__(self, operation_name: str):
        """Initialize the default handler.

        Args:
            operation_name: Name of the operation for error messages.
        """
        self.operation_name = operation_name

    @abstractmethod
    def __call__(self, message: Any, instance: Any) -> Any:
        """Handle an unregistered event type.

        Args:
            message: The event data that has no applier.
            instance: The instance the event was routed to.
        """
        ...


class RaiseHandler(DefaultHandler):
    """Raise NotImplementedError for unregistered event types."""

    __slots__ = ()

    def __call__(self, message: Any, instance: Any) -> Any:
        raise NotImplementedError(
            f"No {self.operation_name} registered on {type(instance).__name__} "
            f"for event type {type(message).__name__}"
        )


class IgnoreHandler(DefaultHandler):
    """Silently ignore unregistered event types."""

    __slots__ = ()

    def __call__(self, message: Any, instance: Any) -> Any:
        pass


def _extract_handler_type(func: Callable[..., Any], param_index: int = 1) -> type:
    """Extract the type annotation of a handler parameter.

    Args:
        func: The handler method to inspect.
        param_index: Index of the parameter to extract
            (0=self, 1=first arg, etc.)

    Returns:
        The annotated type the handler should be routed on.

    Raises:
        ValueError: If the parameter is missing or lacks a type annotation.
    """
    func_name = getattr(func, "__name__", repr(func))
    params = list(inspect.signature(func).parameters.values())

    if len(params) <= param_index:
        raise ValueError(f"Handler {func_name} must have at least {param_index + 1} parameters")

    param = params[param_index]
    if param.annotation is inspect.Parameter.empty:
        raise ValueError(
            f"Handler {func_name} parameter '{param.name}' must have a type annotation"
        )
    if isinstance(param.annotation, str):
        hints = inspect.get_annotations(func, eval_str=True)
        return hints[param.name]
    return param.annotation


class MessageRouter:
    """Dispatches event data to type-specific applier methods.

    Uses singledispatch, so an applier registered for a base class also
    receives instances of its subclasses.
    """

    __slots__ = ("_dispatch",)

    def __init__(self, default_handler: DefaultHandler):
        @singledispatch
        def dispatch(message: object, instance: object) -> object:
            return default_handler(message, instance)

        self._dispatch = dispatch

    def register(self, message_type: type, handler: Callable[[object, object], object]) -> None:
        """Register a handler for a specific event type.

        Args:
            message_type: The event data class this handler applies.
            handler: The unbound method to call with (instance, message).
        """

        def wrapper(msg: object, inst: object, h: Any = handler) -> object:
            return h(inst, msg)

        self._dispatch.register(message_type)(wrapper)

    def route(self, instance: Any, message: Any) -> object:
        """Route event data to its registered applier on ``instance``."""
        return self._dispatch(message, instance)


class HandlerDecorator:
    """Marks methods as handlers for the type named in their annotation."""

    def __init__(self, marker_attr: str, type_attr: str):
        self.marker_attr = marker_attr
        self.type_attr = type_attr

    def __call__(self, func: Callable[..., T]) -> Callable[..., T]:
        message_type = _extract_handler_type(func, param_index=1)
        setattr(func, self.type_attr, message_type)
        setattr(func, self.marker_attr, True)
        return func


applies_event = HandlerDecorator("_is_event_applier", "_applies_event_type")

applies_event.__doc__ = """Decorator marking a method as an event applier.

The event type is automatically extracted from the method's type annotation.

Example:
    >>> class Order(Aggregate):
    ...     @applies_event
    ...     def apply_placed(self, evt: OrderPlaced):
    ...         self.customer = evt.customer
"""


def setup_routing(
    cls: type,
    marker_attr: str,
    type_attr: str,
    default_handler: DefaultHandler,
) -> MessageRouter:
    """Scan a class hierarchy for decorated methods and build a router.

    Args:
        cls: The class to set up routing for.
        marker_attr: Attribute name marking decorated methods.
        type_attr: Attribute name storing the message type.
        default_handler: Handler for unregistered message types.

    Returns:
        A configured MessageRouter.
    """
    router = MessageRouter(default_handler)

    # Walk the MRO from the base upwards so subclass appliers win.
    for klass in reversed(cls.__mro__):
        for value in klass.__dict__.values():
            if inspect.isfunction(value) and getattr(value, marker_attr, False):
                router.register(getattr(value, type_attr), value)

    return router


def setup_event_applying(cls: type, strict: bool = True) -> MessageRouter:
    """Set up event applier routing for an aggregate class.

    Args:
        cls: The aggregate class to set up routing for.
        strict: Raise on events without an applier when True,
            ignore them when False.

    Returns:
        A MessageRouter for applying events.
    """
    default: DefaultHandler = RaiseHandler("event applier") if strict else IgnoreHandler(
        "event applier"
    )
    return setup_routing(cls, "_is_event_applier", "_applies_event_type", default)
