from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

READ_MUTABILITIES = frozenset({"view", "pure"})


class Mode(enum.Enum):
    READ = "read"
    WRITE = "write"


@dataclass(frozen=True)
class ParamSchema:
    """One ABI parameter or struct field.

    ``fields`` is non-empty only for structures (``tuple`` / ``tuple[]``).
    """

    name: str
    type_tag: str
    fields: Tuple["ParamSchema", ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ParamSchema":
        # Backend payloads use param_type; raw ABI JSON uses type.
        type_tag = raw.get("param_type")
        if type_tag is None:
            type_tag = raw.get("type", "")
        components = raw.get("components") or raw.get("fields") or []
        return cls(
            name=str(raw.get("name") or ""),
            type_tag=str(type_tag or ""),
            fields=tuple(cls.from_dict(item) for item in components if isinstance(item, Mapping)),
        )

    @property
    def is_structured(self) -> bool:
        return bool(self.fields)

    @property
    def is_array(self) -> bool:
        return self.type_tag.endswith("[]")

    def element(self) -> "ParamSchema":
        if not self.is_array:
            raise ValueError(f"'{self.type_tag}' is not an array type.")
        return ParamSchema(name=self.name, type_tag=self.type_tag[:-2], fields=self.fields)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "param_type": self.type_tag}
        if self.fields:
            data["components"] = [item.to_dict() for item in self.fields]
        return data


def parse_params(raw: Optional[Sequence[Any]]) -> Tuple[ParamSchema, ...]:
    if not raw:
        return ()
    return tuple(ParamSchema.from_dict(item) for item in raw if isinstance(item, Mapping))


@dataclass(frozen=True)
class FunctionSchema:
    name: str
    signature: str = ""
    inputs: Tuple[ParamSchema, ...] = ()
    outputs: Tuple[ParamSchema, ...] = ()
    state_mutability: str = "nonpayable"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "FunctionSchema":
        mutability = raw.get("state_mutability") or raw.get("stateMutability") or "nonpayable"
        return cls(
            name=str(raw.get("name") or ""),
            signature=str(raw.get("signature") or ""),
            inputs=parse_params(raw.get("inputs")),
            outputs=parse_params(raw.get("outputs")),
            state_mutability=str(mutability).lower(),
        )

    @property
    def is_payable(self) -> bool:
        return self.state_mutability == "payable"

    @property
    def is_read(self) -> bool:
        return self.state_mutability in READ_MUTABILITIES

    @property
    def mode(self) -> Mode:
        return Mode.READ if self.is_read else Mode.WRITE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "signature": self.signature,
            "inputs": [item.to_dict() for item in self.inputs],
            "outputs": [item.to_dict() for item in self.outputs],
            "state_mutability": self.state_mutability,
        }


@dataclass(frozen=True)
class ConstructorSchema:
    inputs: Tuple[ParamSchema, ...] = ()
    state_mutability: str = "nonpayable"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ConstructorSchema":
        mutability = raw.get("state_mutability") or raw.get("stateMutability") or "nonpayable"
        return cls(inputs=parse_params(raw.get("inputs")), state_mutability=str(mutability).lower())

    @property
    def is_payable(self) -> bool:
        return self.state_mutability == "payable"


@dataclass(frozen=True)
class FunctionCatalog:
    """Functions of one deployment split by how they are invoked."""

    read: Tuple[FunctionSchema, ...] = ()
    write: Tuple[FunctionSchema, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "FunctionCatalog":
        return cls(
            read=tuple(FunctionSchema.from_dict(item) for item in raw.get("read") or []),
            write=tuple(FunctionSchema.from_dict(item) for item in raw.get("write") or []),
        )

    def find(self, name: str) -> Tuple[FunctionSchema, Mode]:
        for func in self.read:
            if func.name == name:
                return func, Mode.READ
        for func in self.write:
            if func.name == name:
                return func, Mode.WRITE
        known = ", ".join(sorted({f.name for f in self.read + self.write})) or "<none>"
        raise ValueError(f"Function '{name}' not found. Available: {known}.")

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "read": [func.to_dict() for func in self.read],
            "write": [func.to_dict() for func in self.write],
        }


@dataclass(frozen=True)
class ArtifactDetails:
    name: str
    source_path: str = ""
    constructor: Optional[ConstructorSchema] = None
    has_bytecode: bool = False
    in_registry: bool = False
    abi: Any = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ArtifactDetails":
        constructor_raw = raw.get("constructor")
        constructor = (
            ConstructorSchema.from_dict(constructor_raw) if isinstance(constructor_raw, Mapping) else None
        )
        return cls(
            name=str(raw.get("name") or ""),
            source_path=str(raw.get("source_path") or ""),
            constructor=constructor,
            has_bytecode=bool(raw.get("has_bytecode")),
            in_registry=bool(raw.get("in_registry")),
            abi=raw.get("abi"),
        )

    @property
    def constructor_inputs(self) -> Tuple[ParamSchema, ...]:
        return self.constructor.inputs if self.constructor else ()

    @property
    def is_payable(self) -> bool:
        return bool(self.constructor and self.constructor.is_payable)
