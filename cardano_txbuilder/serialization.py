"""CBOR serialization interfaces shared by every ledger type of the builder.

Ledger values are dataclasses. A value is turned into "primitives" (the python types
cbor2 writes natively) before encoding, and rebuilt from the primitives cbor2 decodes.
The field type hints of a dataclass drive both directions.
"""

from __future__ import annotations

import json
import os
from collections import UserDict, UserList
from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from fractions import Fraction
from functools import wraps
from inspect import isclass
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    List,
    Optional,
    Type,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from frozenlist import FrozenList
from pprintpp import pformat

from cardano_txbuilder.cbor import cbor2
from cardano_txbuilder.exception import DeserializeException, SerializeException
from cardano_txbuilder.logging import logger
from cardano_txbuilder.types import check_type, typechecked

__all__ = [
    "default_encoder",
    "IndefiniteList",
    "Primitive",
    "CBORSerializable",
    "ArrayCBORSerializable",
    "MapCBORSerializable",
    "DictCBORSerializable",
    "CodedSerializable",
    "RawCBOR",
    "cbor_field",
    "list_hook",
    "limit_primitive_type",
]

CBORTag = cbor2.CBORTag
FrozenDict = cbor2.FrozenDict

# Decoding tag 258 into a python set would lose the order of its elements.
try:
    cbor2._decoder.semantic_decoders.pop(258)
except (AttributeError, KeyError) as e:
    logger.warning(f"CBOR tag 258 keeps its set decoder: {e!r}")


class IndefiniteList(UserList):
    """A list written as an indefinite-length CBOR array."""


@dataclass
class RawCBOR:
    """Bytes that are already CBOR and are written to the output unchanged."""

    cbor: bytes


Primitive = Union[
    bytes,
    bytearray,
    str,
    int,
    float,
    Decimal,
    bool,
    None,
    tuple,
    list,
    IndefiniteList,
    dict,
    datetime,
    CBORTag,
    Fraction,
    FrozenDict,
    FrozenList,
]


def limit_primitive_type(*allowed_types):
    """Make a ``from_primitive`` class method reject primitives of any other type.

    Raises:
        DeserializeException: When the primitive is not one of ``allowed_types``.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(cls, value: Primitive):
            if isinstance(value, allowed_types):
                return func(cls, value)
            names = ", ".join(t.__name__ for t in allowed_types)
            raise DeserializeException(
                f"{cls.__name__} is restored from one of ({names}), "
                f"got {type(value).__name__}: {value!r}"
            )

        return wrapper

    return decorator


def default_encoder(encoder: cbor2.CBOREncoder, value: Any):
    """Fallback of the cbor2 encoder for the types it does not know.

    A :class:`CBORSerializable` is validated before it is written.
    """
    if isinstance(value, CBORSerializable):
        value.validate()
        encoder.encode(value.to_primitive())
    elif isinstance(value, IndefiniteList):
        # Header, items and break byte of an indefinite-length array.
        encoder.write(b"\x9f")
        for item in value:
            encoder.encode(item)
        encoder.write(b"\xff")
    elif isinstance(value, RawCBOR):
        encoder.write(value.cbor)
    elif isinstance(value, FrozenList):
        encoder.encode(list(value))
    elif isinstance(value, FrozenDict):
        encoder.encode(dict(value))
    else:
        raise SerializeException(f"Cannot encode {type(value).__name__}: {value!r}")


def _frozen(value: Primitive) -> Primitive:
    if isinstance(value, dict):
        return FrozenDict(value)
    if isinstance(value, list) and not isinstance(value, FrozenList):
        frozen = FrozenList(value)
        frozen.freeze()
        return frozen
    return value


def _to_primitive(value: Any, as_key: bool = False) -> Primitive:
    """Replace every :class:`CBORSerializable` nested in ``value`` by its primitive.

    Containers used as map keys are frozen so they stay hashable.
    """
    if isinstance(value, CBORSerializable):
        result = _to_primitive(value.to_primitive(), as_key)
    elif isinstance(value, IndefiniteList):
        result = IndefiniteList([_to_primitive(item) for item in value])
    elif isinstance(value, (list, FrozenList)):
        result = [_to_primitive(item, as_key) for item in value]
    elif isinstance(value, tuple):
        result = tuple(_to_primitive(item, as_key) for item in value)
    elif isinstance(value, (dict, FrozenDict)):
        result = {
            _to_primitive(k, as_key=True): _to_primitive(v, as_key)
            for k, v in value.items()
        }
    elif isinstance(value, CBORTag):
        result = CBORTag(value.tag, _to_primitive(value.value, as_key))
    else:
        result = value
    return _frozen(result) if as_key else result


def _matches(value: Any, hint: Any) -> bool:
    """Check ``value`` against a type hint, validating the serializables found on the way."""
    if hint is Any:
        return True
    origin, args = get_origin(hint), get_args(hint)
    if origin is None:
        if not isinstance(value, hint):
            return False
        if isinstance(value, CBORSerializable):
            value.validate()
        return True
    if origin is Union:
        return any(_matches(value, arg) for arg in args)
    if origin is dict:
        return isinstance(value, (dict, FrozenDict)) and all(
            _matches(k, args[0]) and _matches(v, args[1]) for k, v in value.items()
        )
    if origin is tuple and len(args) > 1 and args[1] is not Ellipsis:
        return len(value) == len(args) and all(
            _matches(item, arg) for item, arg in zip(value, args)
        )
    if origin in (list, tuple, set, frozenset):
        return isinstance(value, (list, tuple, set, frozenset, UserList)) and all(
            _matches(item, args[0]) for item in value
        )
    return isinstance(value, origin)


def _restore(hint: Any, value: Primitive) -> Any:
    """Rebuild a value of type ``hint`` from a decoded primitive.

    Raises:
        DeserializeException: When ``value`` does not fit ``hint``.
    """
    if hint is Any:
        return value
    origin, args = get_origin(hint), get_args(hint)
    if origin is Union:
        for arg in args:
            try:
                return _restore(arg, value)
            except DeserializeException:
                continue
        raise DeserializeException(f"{value!r} does not fit any of {args}.")
    if origin is list:
        if not isinstance(value, (list, tuple, UserList)):
            raise DeserializeException(f"Expected a list, got {type(value).__name__}.")
        return [_restore(args[0], item) for item in value]
    if origin is dict:
        if not isinstance(value, (dict, FrozenDict)):
            raise DeserializeException(f"Expected a map, got {type(value).__name__}.")
        return {_restore(args[0], k): _restore(args[1], v) for k, v in value.items()}
    if isclass(hint) and issubclass(hint, CBORSerializable):
        return hint.from_primitive(value)
    if isclass(hint) and isinstance(value, hint):
        return value
    raise DeserializeException(f"Cannot restore {value!r} as {hint}.")


CBORBase = TypeVar("CBORBase", bound="CBORSerializable")


@typechecked
class CBORSerializable:
    """
    Base of every value that is written to and read from CBOR.

    Subclasses implement :meth:`to_shallow_primitive` (or :meth:`to_primitive`) and
    :meth:`from_primitive`. A shallow primitive may still hold serializables, which
    :meth:`to_primitive` resolves.
    """

    def to_shallow_primitive(self) -> Any:
        """Convert the instance to a primitive whose items may still be serializables.

        Raises:
            SerializeException: When the instance has no primitive form.
        """
        raise NotImplementedError(
            f"{type(self).__name__} does not implement to_shallow_primitive()."
        )

    def to_primitive(self) -> Primitive:
        """Convert the instance, and everything it holds, to CBOR primitives."""
        return _to_primitive(self.to_shallow_primitive())

    def validate(self):
        """Check the annotated attributes of the instance against their type hints.

        Nested serializables are validated as well.

        Raises:
            TypeError: When an attribute holds a value of another type.
        """
        for name, hint in get_type_hints(type(self)).items():
            if get_origin(hint) is ClassVar:
                continue
            value = getattr(self, name)
            if not _matches(value, hint):
                raise TypeError(
                    f"{type(self).__name__}.{name} should be {hint}, got {value!r}."
                )

    @classmethod
    def from_primitive(cls: Type[CBORBase], value: Any) -> CBORBase:
        """Rebuild an instance from CBOR primitives.

        Raises:
            DeserializeException: When ``value`` is not a primitive form of ``cls``.
        """
        raise NotImplementedError(f"{cls.__name__} does not implement from_primitive().")

    def to_cbor(self) -> bytes:
        """Encode the instance to CBOR bytes."""
        return cbor2.dumps(self, default=default_encoder)

    def to_cbor_hex(self) -> str:
        return self.to_cbor().hex()

    @classmethod
    def from_cbor(cls: Type[CBORBase], payload: Union[str, bytes]) -> CBORBase:
        """Decode an instance from CBOR bytes or their hex string."""
        if isinstance(payload, str):
            payload = bytes.fromhex(payload)
        return cls.from_primitive(cbor2.loads(payload))

    def __repr__(self):
        return pformat(vars(self), indent=2)

    @property
    def json_type(self) -> str:
        """``type`` of the JSON text envelope, the class name unless overridden."""
        return type(self).__name__

    @property
    def json_description(self) -> str:
        """``description`` of the JSON text envelope, the class docstring unless overridden."""
        return type(self).__doc__ or "Generated with cardano-txbuilder"

    def to_json(
        self,
        key_type: Optional[str] = None,
        description: Optional[str] = None,
        **kwargs,
    ) -> str:
        """Wrap the CBOR hex of the instance in a cardano-cli style JSON text envelope.

        Args:
            key_type (str): Overrides :attr:`json_type`.
            description (str): Overrides :attr:`json_description`.
            **kwargs: Passed on to ``json.dumps``. ``indent`` defaults to 2.
        """
        kwargs.setdefault("indent", 2)
        envelope = {
            "type": key_type or self.json_type,
            "description": description or self.json_description,
            "cborHex": self.to_cbor_hex(),
        }
        return json.dumps(envelope, **kwargs)

    @classmethod
    def from_json(cls: Type[CBORBase], data: str) -> CBORBase:
        """Read an instance back from a JSON text envelope.

        Raises:
            DeserializeException: When the envelope holds another type.
        """
        restored = cls.from_cbor(json.loads(data)["cborHex"])
        if not isinstance(restored, cls):
            raise DeserializeException(
                f"Expected {cls.__name__}, the envelope holds {type(restored).__name__}."
            )
        return restored

    def save(
        self,
        path: str,
        key_type: Optional[str] = None,
        description: Optional[str] = None,
        **kwargs,
    ):
        """Write the JSON text envelope of the instance to ``path``.

        Raises:
            IOError: When ``path`` already holds a non-empty file.
        """
        if os.path.isfile(path) and os.path.getsize(path) > 0:
            raise IOError(f"Refusing to overwrite {path}.")
        with open(path, "w") as f:
            f.write(self.to_json(key_type, description, **kwargs))

    @classmethod
    def load(cls: Type[CBORBase], path: str) -> CBORBase:
        with open(path) as f:
            return cls.from_json(f.read())


def cbor_field(
    key: Any = None,
    optional: bool = False,
    object_hook: Optional[Callable[[Any], Any]] = None,
    **kwargs,
) -> Any:
    """A dataclass field of an array or map serializable.

    Args:
        key: Map key of the field. Defaults to the field name.
        optional (bool): Leave the field out of the encoding when it is None. The field
            then defaults to None.
        object_hook: Restores the field from its primitive instead of its type hint.
        **kwargs: Passed on to ``dataclasses.field``.
    """
    metadata: Dict[str, Any] = {}
    if key is not None:
        metadata["key"] = key
    if optional:
        metadata["optional"] = True
        kwargs.setdefault("default", None)
    if object_hook is not None:
        metadata["object_hook"] = object_hook
    return field(metadata=metadata, **kwargs)


def _restore_field(cls: type, f, value: Primitive) -> Any:
    hook = f.metadata.get("object_hook")
    if hook is not None:
        return hook(value)
    return _restore(get_type_hints(cls)[f.name], value)


def _encoded_fields(obj) -> List[Any]:
    return [
        f
        for f in fields(obj)
        if not (f.metadata.get("optional") and getattr(obj, f.name) is None)
    ]


ArrayBase = TypeVar("ArrayBase", bound="ArrayCBORSerializable")


@dataclass(repr=False)
class ArrayCBORSerializable(CBORSerializable):
    """
    A dataclass written as a CBOR array of its fields, in declaration order.

    Optional fields holding None are left out, so they have to come after every
    required field.

    Examples:

        >>> from dataclasses import dataclass
        >>> @dataclass
        ... class Pair(ArrayCBORSerializable):
        ...     a: int
        ...     b: int = cbor_field(optional=True)
        >>> Pair(1).to_primitive()
        [1]
        >>> Pair(1, 2).to_cbor_hex()
        '820102'
    """

    def to_shallow_primitive(self) -> List[Any]:
        return [getattr(self, f.name) for f in _encoded_fields(self)]

    @classmethod
    @limit_primitive_type(list, tuple, IndefiniteList)
    def from_primitive(cls: Type[ArrayBase], values: Any) -> ArrayBase:
        init_fields = [f for f in fields(cls) if f.init]
        if len(values) > len(init_fields):
            raise DeserializeException(
                f"{cls.__name__} has {len(init_fields)} fields, got {len(values)} values."
            )
        return cls(*[_restore_field(cls, f, v) for f, v in zip(init_fields, values)])


MapBase = TypeVar("MapBase", bound="MapCBORSerializable")


@dataclass(repr=False)
class MapCBORSerializable(CBORSerializable):
    """
    A dataclass written as a CBOR map with one entry per field.

    An entry is keyed by the ``key`` of its field metadata, or by the field name.
    Optional fields holding None are left out.

    Examples:

        >>> from dataclasses import dataclass
        >>> @dataclass
        ... class Body(MapCBORSerializable):
        ...     fee: int = cbor_field(key=2, default=0)
        ...     ttl: int = cbor_field(key=3, optional=True)
        >>> Body(fee=10).to_primitive()
        {2: 10}
    """

    def to_shallow_primitive(self) -> Dict[Any, Any]:
        entries: Dict[Any, Any] = {}
        for f in _encoded_fields(self):
            key = f.metadata.get("key", f.name)
            if key in entries:
                raise SerializeException(
                    f"{type(self).__name__} uses map key {key!r} more than once."
                )
            entries[key] = getattr(self, f.name)
        return entries

    @classmethod
    @limit_primitive_type(dict, FrozenDict)
    def from_primitive(cls: Type[MapBase], values: Any) -> MapBase:
        by_key = {f.metadata.get("key", f.name): f for f in fields(cls) if f.init}
        unknown = [k for k in values if k not in by_key]
        if unknown:
            raise DeserializeException(f"Unexpected keys {unknown} for {cls.__name__}.")
        return cls(
            **{by_key[k].name: _restore_field(cls, by_key[k], v) for k, v in values.items()}
        )


DictBase = TypeVar("DictBase", bound="DictCBORSerializable")


class DictCBORSerializable(UserDict, CBORSerializable):
    """A mapping whose keys share ``KEY_TYPE`` and whose values share ``VALUE_TYPE``.

    Items set after construction are type checked. Keys are written in canonical
    CBOR order, shorter encodings first and then bytewise.
    """

    KEY_TYPE: ClassVar[Any] = Any
    VALUE_TYPE: ClassVar[Any] = Any

    def __init__(self, *args, **kwargs):
        self.data = dict(*args, **kwargs)

    def __setitem__(self, key: Any, value: Any):
        check_type(key, self.KEY_TYPE)
        check_type(value, self.VALUE_TYPE)
        self.data[key] = value

    def validate(self):
        for item in self.data.items():
            for part in item:
                if isinstance(part, CBORSerializable):
                    part.validate()

    @staticmethod
    def canonical_key(key: Any):
        """Sort key of ``key`` among the keys of a canonical CBOR map."""
        encoded = cbor2.dumps(key, default=default_encoder)
        return len(encoded), encoded

    def to_shallow_primitive(self) -> Dict[Any, Any]:
        return dict(sorted(self.data.items(), key=lambda kv: self.canonical_key(kv[0])))

    @classmethod
    @limit_primitive_type(dict, FrozenDict)
    def from_primitive(cls: Type[DictBase], value: Any) -> DictBase:
        return cls(
            {_restore(cls.KEY_TYPE, k): _restore(cls.VALUE_TYPE, v) for k, v in value.items()}
        )


@typechecked
def list_hook(
    cls: Type[CBORBase],
) -> Callable[[List[Primitive]], List[CBORBase]]:
    """An ``object_hook`` restoring every item of a list as a ``cls``."""
    return lambda values: [cls.from_primitive(v) for v in values]


CodedBase = TypeVar("CodedBase", bound="CodedSerializable")


@dataclass(repr=False)
class CodedSerializable(ArrayCBORSerializable):
    """An array whose first item is the ``CODE`` of its variant, followed by the fields.

    Examples:
        >>> from dataclasses import dataclass
        >>> @dataclass
        ... class Tagged(CodedSerializable):
        ...     CODE: ClassVar[int] = 1
        ...     value: str
        >>> Tagged("hello").to_primitive()
        [1, 'hello']
        >>> Tagged.from_primitive([1, "hello"]).value
        'hello'
    """

    CODE: ClassVar[int]

    def to_shallow_primitive(self) -> List[Any]:
        return [self.CODE] + super().to_shallow_primitive()

    @classmethod
    @limit_primitive_type(list, tuple)
    def from_primitive(cls: Type[CodedBase], values: Any) -> CodedBase:
        if not values or values[0] != cls.CODE:
            raise DeserializeException(
                f"{cls.__name__} is coded {cls.CODE}, got {values[:1]}."
            )
        return super().from_primitive(values[1:])
