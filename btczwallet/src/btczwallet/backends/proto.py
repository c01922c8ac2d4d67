"""
Protobuf messages for the lightwalletd CompactTxStreamer service.

Only the messages and fields the wallet reads are declared; anything else the
server sends is kept as unknown fields by protobuf. The descriptors are built
in code and registered in a private pool, so there is no protoc build step.
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "cash.z.wallet.sdk.rpc"
SERVICE_NAME = f"{PACKAGE}.CompactTxStreamer"

_F = descriptor_pb2.FieldDescriptorProto

# name -> list of (field name, number, type, label, message type name)
_MESSAGES: dict[str, list[tuple[str, int, int, int, str | None]]] = {
    "BlockID": [
        ("height", 1, _F.TYPE_UINT64, _F.LABEL_OPTIONAL, None),
        ("hash", 2, _F.TYPE_BYTES, _F.LABEL_OPTIONAL, None),
    ],
    "BlockRange": [
        ("start", 1, _F.TYPE_MESSAGE, _F.LABEL_OPTIONAL, "BlockID"),
        ("end", 2, _F.TYPE_MESSAGE, _F.LABEL_OPTIONAL, "BlockID"),
    ],
    "ChainSpec": [],
    "Empty": [],
    "RawTransaction": [
        ("data", 1, _F.TYPE_BYTES, _F.LABEL_OPTIONAL, None),
        ("height", 2, _F.TYPE_UINT64, _F.LABEL_OPTIONAL, None),
    ],
    "SendResponse": [
        ("errorCode", 1, _F.TYPE_INT32, _F.LABEL_OPTIONAL, None),
        ("errorMessage", 2, _F.TYPE_STRING, _F.LABEL_OPTIONAL, None),
    ],
    "TransparentAddressBlockFilter": [
        ("address", 1, _F.TYPE_STRING, _F.LABEL_OPTIONAL, None),
        ("range", 2, _F.TYPE_MESSAGE, _F.LABEL_OPTIONAL, "BlockRange"),
    ],
    "LightdInfo": [
        ("version", 1, _F.TYPE_STRING, _F.LABEL_OPTIONAL, None),
        ("vendor", 2, _F.TYPE_STRING, _F.LABEL_OPTIONAL, None),
        ("taddrSupport", 3, _F.TYPE_BOOL, _F.LABEL_OPTIONAL, None),
        ("chainName", 4, _F.TYPE_STRING, _F.LABEL_OPTIONAL, None),
        ("saplingActivationHeight", 5, _F.TYPE_UINT64, _F.LABEL_OPTIONAL, None),
        ("consensusBranchId", 6, _F.TYPE_STRING, _F.LABEL_OPTIONAL, None),
        ("blockHeight", 7, _F.TYPE_UINT64, _F.LABEL_OPTIONAL, None),
    ],
    "CompactTx": [
        ("index", 1, _F.TYPE_UINT64, _F.LABEL_OPTIONAL, None),
        ("hash", 2, _F.TYPE_BYTES, _F.LABEL_OPTIONAL, None),
        ("fee", 3, _F.TYPE_UINT32, _F.LABEL_OPTIONAL, None),
    ],
    "CompactBlock": [
        ("protoVersion", 1, _F.TYPE_UINT32, _F.LABEL_OPTIONAL, None),
        ("height", 2, _F.TYPE_UINT64, _F.LABEL_OPTIONAL, None),
        ("hash", 3, _F.TYPE_BYTES, _F.LABEL_OPTIONAL, None),
        ("prevHash", 4, _F.TYPE_BYTES, _F.LABEL_OPTIONAL, None),
        ("time", 5, _F.TYPE_UINT32, _F.LABEL_OPTIONAL, None),
        ("header", 6, _F.TYPE_BYTES, _F.LABEL_OPTIONAL, None),
        ("vtx", 7, _F.TYPE_MESSAGE, _F.LABEL_REPEATED, "CompactTx"),
    ],
}


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="btczwallet/lightwalletd.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    for message_name, fields in _MESSAGES.items():
        message = file_proto.message_type.add(name=message_name)
        for name, number, field_type, label, type_name in fields:
            field = message.field.add(name=name, number=number, type=field_type, label=label)
            if type_name is not None:
                field.type_name = f".{PACKAGE}.{type_name}"
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str) -> type:
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.{name}"))


BlockID = _message_class("BlockID")
BlockRange = _message_class("BlockRange")
ChainSpec = _message_class("ChainSpec")
Empty = _message_class("Empty")
RawTransaction = _message_class("RawTransaction")
SendResponse = _message_class("SendResponse")
TransparentAddressBlockFilter = _message_class("TransparentAddressBlockFilter")
LightdInfo = _message_class("LightdInfo")
CompactTx = _message_class("CompactTx")
CompactBlock = _message_class("CompactBlock")


def method(name: str) -> str:
    """Full gRPC method path for a CompactTxStreamer RPC."""
    return f"/{SERVICE_NAME}/{name}"
