"""
Annotated model discovery.

Reads leaf checks declared inline on class annotations and turns them into
(declaring type, member, check) triples for RuleRegistry.add_discovered().

Usage:
    @dataclass
    class User:
        email: Annotated[str, Required(), EmailAddress()]
        nickname: Annotated[Optional[str], MaxLength(20)] = None

    register_discovered(root, User)
    root.validator().validate(User(email="bad"))
"""

import inspect
from typing import TYPE_CHECKING, Iterator, List, Tuple, get_args, get_type_hints

from .rules.checks import LeafCheck
from .utils.logger import get_logger

if TYPE_CHECKING:
    from .rules.root import ValidatorRoot

logger = get_logger()

Triple = Tuple[type, str, LeafCheck]


def _checks_in(hint) -> List[LeafCheck]:
    metadata = getattr(hint, "__metadata__", None)
    if metadata is not None:
        return [m for m in metadata if isinstance(m, LeafCheck)]
    # Optional[Annotated[...]] from a None default
    checks: List[LeafCheck] = []
    for arg in get_args(hint):
        checks.extend(_checks_in(arg))
    return checks


def discover_rules(model_type: type) -> Iterator[Triple]:
    """
    Yield a triple per LeafCheck found in `Annotated[...]` metadata.

    Annotations inherited from base classes are reported against the base
    class that declares them, base classes first.
    """
    for cls in reversed(model_type.__mro__):
        if cls is object:
            continue
        own = inspect.get_annotations(cls)
        if not own:
            continue
        hints = get_type_hints(cls, include_extras=True)
        for name in own:
            for check in _checks_in(hints.get(name)):
                yield cls, name, check


def register_discovered(root: "ValidatorRoot", *model_types: type) -> int:
    """
    Register annotated checks for each type with the root's registry.

    Returns:
        Number of rules added
    """
    triples: List[Triple] = []
    for model_type in model_types:
        found = list(discover_rules(model_type))
        logger.debug(f"Discovered {len(found)} annotated check(s) on {model_type.__name__}")
        triples.extend(found)
    return root.registry.add_discovered(triples)
