"""pgcall.proto - proto3 schema generation for stored functions."""

from pgcall.proto.emitter import message_name, write_function, write_message
from pgcall.proto.registry import DedupRegistry
from pgcall.proto.service import save_protobuf
from pgcall.proto.types import ProtoOptions, camel_case, proto_type

__all__ = [
    "DedupRegistry",
    "ProtoOptions",
    "camel_case",
    "message_name",
    "proto_type",
    "save_protobuf",
    "write_function",
    "write_message",
]
