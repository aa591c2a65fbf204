"""
Transform Registry.

Holds the rules that turn a located element into a block. Rules are
registered at start-up and the registry is then frozen; matching is a
read-only scan, so one registry serves any number of concurrent calls.

Matching order: ascending priority (lower number wins), then registration
order. The first rule whose predicate accepts the element is the only one
whose builder runs.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict

from .schemas import BlockNode, ElementSpan
from .exceptions import RegistryFrozenError
from .logger import get_module_logger

logger = get_module_logger("registry")


class InnerConverter(ABC):
    """
    Recursive conversion capability handed to builders.

    Builders that need to convert nested markup (a quote's paragraphs) call
    convert() instead of reaching for the pipeline directly. Each instance
    is bound to one nesting depth.
    """

    def __init__(self, depth: int, max_depth: int):
        self.depth = depth
        self.max_depth = max_depth

    @property
    def remaining_depth(self) -> int:
        return max(self.max_depth - self.depth, 0)

    @abstractmethod
    def convert(self, html: str) -> list[BlockNode]:
        """Convert nested markup into blocks one level deeper."""
        pass


Predicate = Callable[[ElementSpan], bool]
Builder = Callable[[ElementSpan, InnerConverter], BlockNode]


class TransformRule(BaseModel):
    """
    One way to turn an element into a block.

    A rule without a builder is schema-driven: the block's attributes are
    read from the element's markup by the attribute parser.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    block_type: str
    priority: int = 10
    predicate: Predicate
    builder: Optional[Builder] = None


class TransformRegistry:
    """Ordered, freezable collection of transform rules."""

    def __init__(self):
        self._rules: list[tuple[int, int, TransformRule]] = []
        self._frozen = False

    def register(self, rule: TransformRule) -> None:
        """
        Add a rule.

        Raises:
            RegistryFrozenError: if the registry has been frozen
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register {rule.block_type}: registry is frozen",
                {"block_type": rule.block_type},
            )
        self._rules.append((rule.priority, len(self._rules), rule))
        self._rules.sort(key=lambda entry: entry[:2])

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def rules(self) -> list[TransformRule]:
        """Rules in matching order."""
        return [rule for _, _, rule in self._rules]

    def match(self, span: ElementSpan) -> Optional[TransformRule]:
        """Return the highest-precedence rule accepting ``span``, or None."""
        for rule in self.rules:
            if rule.predicate(span):
                logger.debug(f"<{span.tag}> matched {rule.block_type} (priority {rule.priority})")
                return rule
        logger.debug(f"No rule for <{span.tag}>")
        return None

    def __len__(self) -> int:
        return len(self._rules)
