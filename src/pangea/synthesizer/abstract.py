"""Generic block synthesizer: turns nested block calls into a nested document."""

from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from pydantic import BaseModel
from ..utils.errors import DuplicateBlockError, InvalidBlockKeyError, SynthesisError
from ..utils.logging import get_logger

logger = get_logger("synthesizer.abstract")


def normalize_value(value: Any) -> Any:
    """
    Convert a Python value into its JSON document form.

    Objects implementing ``__terraform__()`` (resource references) render
    themselves; pydantic models become dicts without unset values.

    Raises:
        SynthesisError: If a None value is found inside a collection
    """
    if hasattr(value, "__terraform__"):
        return value.__terraform__()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return normalize_value(value.model_dump(exclude_none=True))
    if isinstance(value, Mapping):
        return {str(k): normalize_value(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple, set, frozenset)):
        if any(item is None for item in value):
            raise SynthesisError("Lists cannot contain None values")
        return [normalize_value(item) for item in value]
    return value


class BlockContext:
    """
    Handle on one open block of the document.

    Attributes are written with ``ctx.set(key, value)``, ``ctx[key] = value``
    or ``ctx.key(value)``. Calling ``ctx.key()`` without a value opens a
    nested block. Used as a context manager, a block whose body raises is
    removed from its parent again.
    """

    def __init__(self, path: str, body: Dict[str, Any], discard: Optional[Callable[[], None]] = None):
        self._path = path
        self._body = body
        self._discard = discard
        self._block_keys: set = set()

    @property
    def path(self) -> str:
        return self._path

    @property
    def body(self) -> Dict[str, Any]:
        return self._body

    def __enter__(self) -> "BlockContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None and self._discard is not None:
            self._discard()
            logger.debug(f"Discarded block {self._path} after error: {exc}")
        return False

    def __getattr__(self, key: str) -> "_Member":
        if key.startswith("_"):
            raise AttributeError(key)
        return _Member(self, key)

    def __getitem__(self, key: str) -> Any:
        return self._body[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return key in self._body

    def set(self, key: str, value: Any) -> Any:
        """Set an attribute on this block and return the value."""
        if value is None:
            raise SynthesisError(f"Attribute '{key}' in {self._path} cannot be None; omit it instead")
        if key in self._block_keys:
            raise SynthesisError(f"'{key}' in {self._path} is already a nested block")
        self._body[key] = normalize_value(value)
        return value

    def update(self, values: Mapping[str, Any]) -> None:
        """Set several attributes at once, skipping None values."""
        for key, value in values.items():
            if value is not None:
                self.set(key, value)

    def block(self, key: str, *labels: str) -> "BlockContext":
        """
        Open a nested block.

        Opening the same unlabelled block twice turns the entry into a list
        of blocks, the JSON form of repeated Terraform blocks.
        """
        if key in self._body and key not in self._block_keys:
            raise SynthesisError(f"'{key}' in {self._path} is already set as an attribute")
        self._block_keys.add(key)
        path = ".".join([self._path, key, *labels])
        body: Dict[str, Any] = {}

        if labels:
            parent = self._body.setdefault(key, {})
            for label in labels[:-1]:
                parent = parent.setdefault(label, {})
            if labels[-1] in parent:
                raise DuplicateBlockError(f"Block {path} is already defined")
            parent[labels[-1]] = body
            return BlockContext(path, body, partial(parent.pop, labels[-1], None))

        existing = self._body.get(key)
        if existing is None:
            self._body[key] = body
        elif isinstance(existing, list):
            existing.append(body)
        else:
            self._body[key] = [existing, body]
        return BlockContext(path, body, partial(self._discard_child, key, body))

    def _discard_child(self, key: str, body: Dict[str, Any]) -> None:
        current = self._body.get(key)
        if current is body:
            del self._body[key]
            self._block_keys.discard(key)
        elif isinstance(current, list):
            remaining = [entry for entry in current if entry is not body]
            self._body[key] = remaining[0] if len(remaining) == 1 else remaining

    def __repr__(self) -> str:
        return f"BlockContext(path={self._path})"


class _Member:
    """Bound attribute-or-block call produced by ``BlockContext.__getattr__``."""

    def __init__(self, context: BlockContext, key: str):
        self._context = context
        self._key = key

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if len(args) == 1 and not kwargs:
            return self._context.set(self._key, args[0])
        if not args:
            nested = self._context.block(self._key)
            nested.update(kwargs)
            return nested
        raise SynthesisError(f"'{self._key}' takes a single value, got {len(args)}")


class AbstractSynthesizer:
    """
    Block-structured document builder restricted to a set of top-level keys.

    Labelled top-level blocks are unique unless their key is repeatable;
    unlabelled top-level blocks merge into one entry.
    """

    def __init__(self, keys: Iterable[str], repeatable_keys: Iterable[str] = ()):
        self.keys = frozenset(keys)
        self.repeatable_keys = frozenset(repeatable_keys)
        if not self.keys:
            raise SynthesisError("A synthesizer needs at least one top-level key")
        unknown = self.repeatable_keys - self.keys
        if unknown:
            raise SynthesisError(f"Repeatable keys are not top-level keys: {sorted(unknown)}")
        self.synthesis: Dict[str, Any] = {}

    def __getattr__(self, key: str) -> Callable[..., BlockContext]:
        if key.startswith("_") or "keys" not in self.__dict__:
            raise AttributeError(key)
        if key in self.keys:
            return partial(self.block, key)
        raise InvalidBlockKeyError(self._invalid_key_message(key))

    def block(self, key: str, *labels: str) -> BlockContext:
        """Open a top-level block, nesting one level per label."""
        if key not in self.keys:
            raise InvalidBlockKeyError(self._invalid_key_message(key))
        path = ".".join([key, *labels])

        if not labels:
            return BlockContext(path, self.synthesis.setdefault(key, {}))

        parent = self.synthesis.setdefault(key, {})
        for label in labels[:-1]:
            parent = parent.setdefault(label, {})
        last = labels[-1]
        body: Dict[str, Any] = {}

        if last in parent:
            if key not in self.repeatable_keys:
                raise self._duplicate_error(key, labels)
            existing = parent[last]
            parent[last] = existing + [body] if isinstance(existing, list) else [existing, body]
        else:
            parent[last] = body

        return BlockContext(path, body, partial(self._discard, key, labels, body))

    def synthesize(self, build: Optional[Callable[["AbstractSynthesizer"], Any]] = None) -> Dict[str, Any]:
        """Run ``build(self)`` if given and return the accumulated document."""
        if build is not None:
            build(self)
        return self.synthesis

    def clear(self) -> None:
        self.synthesis = {}

    def _duplicate_error(self, key: str, labels: Tuple[str, ...]) -> SynthesisError:
        return DuplicateBlockError(f"Block {'.'.join([key, *labels])} is already defined")

    def _invalid_key_message(self, key: str) -> str:
        return f"'{key}' is not a valid top-level block; expected one of: {', '.join(sorted(self.keys))}"

    def _discard(self, key: str, labels: Tuple[str, ...], body: Dict[str, Any]) -> None:
        containers = [(self.synthesis, key)]
        node = self.synthesis[key]
        for label in labels[:-1]:
            containers.append((node, label))
            node = node[label]

        current = node.get(labels[-1])
        if current is body:
            del node[labels[-1]]
        elif isinstance(current, list):
            remaining = [entry for entry in current if entry is not body]
            node[labels[-1]] = remaining[0] if len(remaining) == 1 else remaining

        for container, label in reversed(containers):
            if container[label]:
                break
            del container[label]
