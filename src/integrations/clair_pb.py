"""
Protocol buffer messages for the Clair v3 ancestry service.

Builds the subset of ``coreos.clair`` messages the RPC backend needs from a
FileDescriptorProto at import time, so no generated code has to be shipped.
Fields Clair sends that are not declared here (statuses, detectors, layer
lists) are skipped by the protobuf parser.
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "coreos.clair"
SERVICE = f"{PACKAGE}.AncestryService"

POST_ANCESTRY_METHOD = f"/{SERVICE}/PostAncestry"
GET_ANCESTRY_METHOD = f"/{SERVICE}/GetAncestry"

_STRING = descriptor_pb2.FieldDescriptorProto.TYPE_STRING
_BOOL = descriptor_pb2.FieldDescriptorProto.TYPE_BOOL
_MESSAGE = descriptor_pb2.FieldDescriptorProto.TYPE_MESSAGE
_OPTIONAL = descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL
_REPEATED = descriptor_pb2.FieldDescriptorProto.LABEL_REPEATED


def _add_field(message, name, number, field_type, label=_OPTIONAL, type_name=None):
    field = message.field.add(name=name, number=number, type=field_type, label=label)
    if type_name:
        field.type_name = type_name
    return field


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto(
        name="layerscan/clair_ancestry.proto",
        package=PACKAGE,
        syntax="proto3",
    )

    vulnerability = proto.message_type.add(name="Vulnerability")
    _add_field(vulnerability, "name", 1, _STRING)
    _add_field(vulnerability, "namespace_name", 2, _STRING)
    _add_field(vulnerability, "description", 3, _STRING)
    _add_field(vulnerability, "link", 4, _STRING)
    _add_field(vulnerability, "severity", 5, _STRING)
    _add_field(vulnerability, "metadata", 6, _STRING)
    _add_field(vulnerability, "fixed_by", 7, _STRING)

    feature = proto.message_type.add(name="Feature")
    _add_field(feature, "name", 1, _STRING)
    _add_field(feature, "namespace_name", 2, _STRING)
    _add_field(feature, "version", 3, _STRING)
    _add_field(feature, "version_format", 4, _STRING)
    _add_field(feature, "vulnerabilities", 5, _MESSAGE, _REPEATED, f".{PACKAGE}.Vulnerability")

    ancestry = proto.message_type.add(name="Ancestry")
    _add_field(ancestry, "name", 1, _STRING)
    _add_field(ancestry, "features", 2, _MESSAGE, _REPEATED, f".{PACKAGE}.Feature")

    get_request = proto.message_type.add(name="GetAncestryRequest")
    _add_field(get_request, "ancestry_name", 1, _STRING)
    _add_field(get_request, "with_vulnerabilities", 2, _BOOL)
    _add_field(get_request, "with_features", 3, _BOOL)

    get_response = proto.message_type.add(name="GetAncestryResponse")
    _add_field(get_response, "ancestry", 1, _MESSAGE, type_name=f".{PACKAGE}.Ancestry")

    post_request = proto.message_type.add(name="PostAncestryRequest")
    post_layer = post_request.nested_type.add(name="PostLayer")
    _add_field(post_layer, "hash", 1, _STRING)
    _add_field(post_layer, "path", 2, _STRING)
    headers_entry = post_layer.nested_type.add(name="HeadersEntry")
    headers_entry.options.map_entry = True
    _add_field(headers_entry, "key", 1, _STRING)
    _add_field(headers_entry, "value", 2, _STRING)
    _add_field(
        post_layer, "headers", 3, _MESSAGE, _REPEATED,
        f".{PACKAGE}.PostAncestryRequest.PostLayer.HeadersEntry",
    )
    _add_field(post_request, "ancestry_name", 1, _STRING)
    _add_field(post_request, "format", 2, _STRING)
    _add_field(
        post_request, "layers", 3, _MESSAGE, _REPEATED,
        f".{PACKAGE}.PostAncestryRequest.PostLayer",
    )

    proto.message_type.add(name="PostAncestryResponse")
    return proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.{name}"))


Vulnerability = _message_class("Vulnerability")
Feature = _message_class("Feature")
Ancestry = _message_class("Ancestry")
GetAncestryRequest = _message_class("GetAncestryRequest")
GetAncestryResponse = _message_class("GetAncestryResponse")
PostAncestryRequest = _message_class("PostAncestryRequest")
PostAncestryResponse = _message_class("PostAncestryResponse")


__all__ = [
    "POST_ANCESTRY_METHOD",
    "GET_ANCESTRY_METHOD",
    "Vulnerability",
    "Feature",
    "Ancestry",
    "GetAncestryRequest",
    "GetAncestryResponse",
    "PostAncestryRequest",
    "PostAncestryResponse",
]
