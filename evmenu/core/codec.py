"""ABI encoding and decoding on top of eth-abi."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

from eth_abi import abi as eth_abi
from eth_abi.exceptions import DecodingError
from eth_utils.abi import collapse_if_tuple

from ..errors import ArtifactError, ExecutionError
from .registry import ContractInfo, ContractRegistry, Fragment

ERROR_STRING_SELECTOR = "0x08c379a0"
PANIC_SELECTOR = "0x4e487b71"


def to_bytes(value: Any) -> bytes:
    """Accept ``bytes``/``HexBytes`` or a ``0x`` hex string."""

    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        text = value[2:] if value.startswith("0x") else value
        try:
            return bytes.fromhex(text)
        except ValueError:
            return b""
    return b""


def param_types(params: Sequence[dict]) -> List[str]:
    return [collapse_if_tuple(param) for param in params]


def _is_dynamic(abi_type: str) -> bool:
    return abi_type in {"string", "bytes"} or abi_type.endswith("]") or abi_type.startswith("(")


def encode_call(fragment: Fragment, args: Sequence[Any]) -> bytes:
    types = param_types(fragment.inputs)
    if len(args) != len(types):
        raise ExecutionError(f"{fragment.signature} expects {len(types)} arguments, received {len(args)}")
    return bytes.fromhex(fragment.selector[2:]) + eth_abi.encode(types, list(args))


def encode_deploy(info: ContractInfo, args: Sequence[Any]) -> bytes:
    if not info.bytecode:
        raise ArtifactError(f"Contract {info.name} has no deployment bytecode")
    constructor = next((entry for entry in info.abi if entry.get("type") == "constructor"), None)
    types = param_types(constructor.get("inputs", [])) if constructor else []
    if len(args) != len(types):
        raise ExecutionError(f"{info.name} constructor expects {len(types)} arguments, received {len(args)}")
    encoded = eth_abi.encode(types, list(args)) if types else b""
    return bytes.fromhex(info.bytecode) + encoded


def decode_output(fragment: Fragment, data: bytes) -> Tuple[Any, ...]:
    types = param_types(fragment.outputs)
    if not types:
        return ()
    return tuple(eth_abi.decode(types, data))


def decode_event(fragment: Fragment, topics: Sequence[Any], data: Any) -> Tuple[Any, ...]:
    """Decode an event in ABI parameter order.

    Indexed dynamic values are only present as their keccak hash and are
    returned as raw 32-byte topics.
    """

    inputs = fragment.inputs
    plain = [param for param in inputs if not param.get("indexed")]
    data_values = iter(eth_abi.decode(param_types(plain), to_bytes(data)) if plain else ())
    topic_values = iter(topics[1:])
    values: List[Any] = []
    for param in inputs:
        if not param.get("indexed"):
            values.append(next(data_values))
            continue
        topic = to_bytes(next(topic_values))
        abi_type = collapse_if_tuple(param)
        if _is_dynamic(abi_type):
            values.append(topic)
        else:
            values.append(eth_abi.decode([abi_type], topic)[0])
    return tuple(values)


def decode_revert(registry: ContractRegistry, data: bytes, fallback: Optional[str] = None) -> ExecutionError:
    """Turn revert data into an :class:`ExecutionError` naming the error."""

    if len(data) < 4:
        return ExecutionError(fallback or "execution reverted", data=data)
    selector = "0x" + data[:4].hex()
    try:
        if selector == ERROR_STRING_SELECTOR:
            (message,) = eth_abi.decode(["string"], data[4:])
            return ExecutionError(f"Error({message!r})", error_name="Error", error_args=(message,), data=data)
        if selector == PANIC_SELECTOR:
            (code,) = eth_abi.decode(["uint256"], data[4:])
            return ExecutionError(f"Panic(0x{code:02x})", error_name="Panic", error_args=(code,), data=data)
        match = registry.lookup_error(selector)
        if match is not None:
            info, fragment = match
            values = tuple(eth_abi.decode(param_types(fragment.inputs), data[4:]))
            return ExecutionError(
                f"{info.name}.{fragment.name}({', '.join(repr(value) for value in values)})",
                error_name=fragment.name,
                error_args=values,
                data=data,
            )
    except DecodingError:
        pass
    return ExecutionError(fallback or f"execution reverted with unknown error {selector}", data=data)


__all__ = [
    "decode_event",
    "decode_output",
    "decode_revert",
    "encode_call",
    "encode_deploy",
    "param_types",
    "to_bytes",
]
