from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import Iterable, Mapping, TypeVar, Union

from apidrift.domain.models import HTTP_METHODS, ContractEndpoint, ObservedEndpoint
from apidrift.inventory.paths import canonical_method, canonicalize

log = getLogger(__name__)


@dataclass(frozen=True, order=True)
class EndpointKey:
    """Join key across contract, source and oracle inventories."""

    method: str
    path: str

    @classmethod
    def of(cls, method: str, path: str) -> "EndpointKey":
        return cls(method=canonical_method(method), path=canonicalize(path))

    def __str__(self) -> str:
        return f"{self.method} {self.path}"


E = TypeVar("E", ContractEndpoint, ObservedEndpoint)

ContractInventory = dict[EndpointKey, ContractEndpoint]
ObservedInventory = dict[EndpointKey, ObservedEndpoint]


def _build(entries: Iterable[Union[E, Mapping]], model: type[E]) -> dict[EndpointKey, E]:
    out: dict[EndpointKey, E] = {}
    for raw in entries:
        data = raw.model_dump() if isinstance(raw, model) else dict(raw)
        key = EndpointKey.of(str(data.get("method") or ""), str(data.get("path") or ""))
        if key.method not in HTTP_METHODS:
            log.debug("skipping %s: unsupported method", key)
            continue
        data.update(method=key.method, path=key.path)
        if key in out:
            # last write wins
            log.debug("duplicate endpoint %s in %s inventory", key, model.__name__)
        out[key] = model.model_validate(data)
    return out


def build_contract_inventory(entries: Iterable[Union[ContractEndpoint, Mapping]]) -> ContractInventory:
    """
    Key contract endpoints by (METHOD, canonical path).

    Accepts models or plain mappings shaped like
    {path, method, expected_request_fields, expected_response_fields, required_fields}.
    """
    return _build(entries, ContractEndpoint)


def build_observed_inventory(entries: Iterable[Union[ObservedEndpoint, Mapping]]) -> ObservedInventory:
    """Key observed endpoints; mappings may use `sourceLocation` or `file` for provenance."""

    def _coerce(raw: Union[ObservedEndpoint, Mapping]) -> Union[ObservedEndpoint, Mapping]:
        if isinstance(raw, ObservedEndpoint):
            return raw
        data = dict(raw)
        loc = data.pop("sourceLocation", None) or data.pop("file", None)
        if loc and not data.get("source_location"):
            data["source_location"] = str(loc)
        return data

    return _build((_coerce(r) for r in entries), ObservedEndpoint)
