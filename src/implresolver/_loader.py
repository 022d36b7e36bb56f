from __future__ import annotations

import builtins
import importlib
import logging
import threading
import typing
from dataclasses import dataclass
from typing import Any

from ._errors import TypeLoadError, TypeReferenceError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TypeReference:
    """Parsed form of a type reference string.

    Grammar::

      ref    := target ('[' ref (',' ref)* ']')?
      target := module ':' qualname | dotted.path.Name | registered-name

    A bracketed suffix closes a generic class over the referenced argument types.
    """

    target: str
    args: tuple[TypeReference, ...] = ()

    def __str__(self) -> str:
        if not self.args:
            return self.target
        return f"{self.target}[{', '.join(str(arg) for arg in self.args)}]"

    @classmethod
    def parse(cls, text: str) -> TypeReference:
        parser = _ReferenceParser(text)
        ref = parser.parse_ref()
        parser.expect_end()
        return ref


class _ReferenceParser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse_ref(self) -> TypeReference:
        target = self._read_target()
        if not self._consume("["):
            return TypeReference(target)

        args = [self.parse_ref()]
        while self._consume(","):
            args.append(self.parse_ref())

        if not self._consume("]"):
            self._fail("expected ',' or ']'")
        return TypeReference(target, tuple(args))

    def expect_end(self) -> None:
        self._skip_spaces()
        if self.pos != len(self.text):
            self._fail("unexpected trailing text")

    def _read_target(self) -> str:
        self._skip_spaces()
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in "[],":
            self.pos += 1

        target = self.text[start : self.pos].strip()
        if not target:
            self._fail("expected a type name")
        if any(ch.isspace() for ch in target):
            self._fail(f"whitespace inside type name {target!r}")
        return target

    def _consume(self, token: str) -> bool:
        self._skip_spaces()
        if self.text.startswith(token, self.pos):
            self.pos += len(token)
            return True
        return False

    def _skip_spaces(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _fail(self, reason: str) -> typing.NoReturn:
        msg = f"Invalid type reference {self.text!r} at position {self.pos}: {reason}"
        raise TypeReferenceError(msg)


class TypeLoader:
    """Turn type references into loaded classes.

    Names registered with :meth:`register` win over imports, so a mapping may
    point at implementations that were registered in-process and never
    imported by name.
    """

    def __init__(self) -> None:
        self._registry: dict[str, Any] = {}
        self._lock = threading.RLock()

    def register(self, name: str, target: Any, *, replace: bool = False) -> None:
        """Register a class or factory callable under a reference name.

        Example:
          loader.register("DiskStorage", DiskStorage)
          resolver mapping: {"Storage": "DiskStorage"}

        """
        if not callable(target):
            msg = f"Registered target for {name!r} must be a class or callable, got {type(target).__name__}"
            raise TypeError(msg)

        if TypeReference.parse(name).args:
            msg = f"Registered name {name!r} must not carry type arguments"
            raise ValueError(msg)

        with self._lock:
            if not replace and name in self._registry:
                msg = f"Type name {name!r} is already registered. Pass replace=True to overwrite."
                raise KeyError(msg)
            self._registry[name] = target

    def unregister(self, name: str) -> None:
        with self._lock:
            self._registry.pop(name, None)

    def registered_names(self) -> list[str]:
        with self._lock:
            return sorted(self._registry)

    def load(self, reference: str | TypeReference, *, key: str | None = None) -> Any:
        """Load the class (or generic alias) a reference denotes.

        Raises TypeLoadError when the reference is malformed, cannot be
        imported, or does not denote something callable.
        """
        if isinstance(reference, str):
            try:
                reference = TypeReference.parse(reference)
            except TypeReferenceError as e:
                raise TypeLoadError(str(e), key=key) from e

        target = self._load_target(reference.target, key=key)
        if not reference.args:
            return target

        args = tuple(self.load(arg, key=key) for arg in reference.args)
        try:
            closed = target[args[0] if len(args) == 1 else args]
        except TypeError as e:
            msg = f"Type {reference.target!r} cannot be parameterized with {len(args)} argument(s): {e}"
            raise TypeLoadError(msg, key=key) from e

        logger.debug("Closed generic %s as %r", reference, closed)
        return closed

    def _load_target(self, target: str, *, key: str | None) -> Any:
        with self._lock:
            registered = self._registry.get(target)
        if registered is not None:
            return registered

        if ":" in target:
            module_name, _, qualname = target.partition(":")
            obj = self._getattr_path(self._import(module_name, target, key=key), qualname, target, key=key)
        else:
            obj = self._import_dotted(target, key=key)

        if not callable(obj):
            msg = f"Reference {target!r} resolves to a {type(obj).__name__}, not a type"
            raise TypeLoadError(msg, key=key)

        return obj

    def _import_dotted(self, target: str, *, key: str | None) -> Any:
        parts = target.split(".")
        if len(parts) == 1:
            if hasattr(builtins, target):
                return getattr(builtins, target)
            msg = f"Unknown type {target!r}: not registered and not a builtin"
            raise TypeLoadError(msg, key=key)

        # longest importable module prefix wins
        for split in range(len(parts) - 1, 0, -1):
            module_name = ".".join(parts[:split])
            try:
                module = importlib.import_module(module_name)
            except ModuleNotFoundError as e:
                if e.name is not None and (module_name == e.name or module_name.startswith(e.name + ".")):
                    continue
                msg = f"Cannot import module {module_name!r} for {target!r}: {e}"
                raise TypeLoadError(msg, key=key) from e
            except Exception as e:  # noqa: BLE001
                msg = f"Importing module {module_name!r} for {target!r} failed: {e}"
                raise TypeLoadError(msg, key=key) from e

            return self._getattr_path(module, ".".join(parts[split:]), target, key=key)

        msg = f"No importable module found for {target!r}"
        raise TypeLoadError(msg, key=key)

    def _import(self, module_name: str, target: str, *, key: str | None) -> Any:
        try:
            return importlib.import_module(module_name)
        except Exception as e:  # noqa: BLE001
            msg = f"Cannot import module {module_name!r} for {target!r}: {e}"
            raise TypeLoadError(msg, key=key) from e

    def _getattr_path(self, module: Any, qualname: str, target: str, *, key: str | None) -> Any:
        obj = module
        for attr in qualname.split("."):
            try:
                obj = getattr(obj, attr)
            except AttributeError as e:
                msg = f"Reference {target!r}: {getattr(obj, '__name__', obj)!r} has no attribute {attr!r}"
                raise TypeLoadError(msg, key=key) from e
        return obj
