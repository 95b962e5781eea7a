"""
Scoped traversal context.

This module provides the ambient state seen by a module while the module tree
is walked:
- StackContext: an immutable last-in-first-out sequence
- ModuleContext: the current directory, current target and the chain of
  modules being loaded, each carried on its own StackContext

Every recursive descent receives a derived copy of the parent context, so the
parent's view is untouched when the descent returns.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, Iterator, Optional, Tuple, TypeVar

from ..errors import ModgraphError

T = TypeVar('T')

_MISSING: Any = object()


class StackContextError(ModgraphError):
    """Raised when a stack is popped or peeked while empty.

    Traversal pushes and pops symmetrically, so this indicates a defect in the
    resolver itself rather than a problem with user input.
    """
    pass


class StackContext(Generic[T]):
    """Immutable LIFO stack.

    push() and pop() return new stacks; the receiver is never modified.
    """

    __slots__ = ('_items',)

    def __init__(self, items: Tuple[T, ...] = ()):
        self._items = tuple(items)

    def push(self, value: T) -> 'StackContext[T]':
        return StackContext(self._items + (value,))

    def pop(self) -> 'StackContext[T]':
        if not self._items:
            raise StackContextError("pop() on an empty stack context")
        return StackContext(self._items[:-1])

    def peek(self, default: Any = _MISSING) -> T:
        """
        Return the value on top of the stack.

        Args:
            default: Value returned for an empty stack. Without it an empty
                stack raises StackContextError.
        """
        if not self._items:
            if default is _MISSING:
                raise StackContextError("peek() on an empty stack context")
            return default
        return self._items[-1]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __contains__(self, value: object) -> bool:
        return value in self._items

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StackContext):
            return NotImplemented
        return self._items == other._items

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f"StackContext({list(self._items)!r})"


@dataclass(frozen=True)
class ModuleContext:
    """Directory and target in effect for a module at load time."""

    directories: StackContext[Path] = field(default_factory=StackContext)
    targets: StackContext[Optional[Path]] = field(default_factory=StackContext)
    modules: StackContext[Path] = field(default_factory=StackContext)

    @property
    def current_directory(self) -> Path:
        return self.directories.peek(Path('.'))

    @property
    def current_target(self) -> Optional[Path]:
        return self.targets.peek(None)

    @property
    def depth(self) -> int:
        return len(self.modules)

    def enter(self, module_path: Path, directory: Path,
              target: Optional[Path]) -> 'ModuleContext':
        """
        Derive the context for a module about to be processed.

        Args:
            module_path: Descriptor file of the module
            directory: Directory the module lives in
            target: Target the module declared, or None to inherit the
                enclosing module's target

        Returns:
            New context; the receiver is unchanged
        """
        if target is None:
            target = self.current_target
        return ModuleContext(
            directories=self.directories.push(directory),
            targets=self.targets.push(target),
            modules=self.modules.push(module_path),
        )

    def leave(self) -> 'ModuleContext':
        """Return the context that was in effect before the last enter()."""
        return ModuleContext(
            directories=self.directories.pop(),
            targets=self.targets.pop(),
            modules=self.modules.pop(),
        )
