# src/siemship/exporter/protos.py
"""Protobuf messages of the ingestion API.

The message classes are built at import time from hand-written file
descriptors registered in a private descriptor pool, so no generated
``_pb2`` modules need to be shipped. Field numbers and names follow the
published ingestion protos:

- ``malachite.ingestion.v2`` (gRPC): ``BatchCreateLogsRequest`` wrapping a
  ``LogEntryBatch`` of ``LogEntry`` messages and an ``EventSource`` header.
- ``chronicle_http.proto`` (HTTPS, no package): ``ImportLogsRequest`` with
  an inline source of ``Log`` messages.

Timestamps are ``google.protobuf.Timestamp``.
"""

from __future__ import annotations

from typing import Any

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory, timestamp_pb2

_F = descriptor_pb2.FieldDescriptorProto

_INGESTION_PACKAGE = "malachite.ingestion.v2"


def _field(
    name: str,
    number: int,
    field_type: int,
    *,
    json_name: str,
    type_name: str = "",
    repeated: bool = False,
    oneof_index: int | None = None,
) -> _F:
    proto = _F(
        name=name,
        number=number,
        type=field_type,  # type: ignore[arg-type]
        label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
        json_name=json_name,
    )
    if type_name:
        proto.type_name = type_name
    if oneof_index is not None:
        proto.oneof_index = oneof_index
    return proto


def _message(name: str, *fields: _F) -> descriptor_pb2.DescriptorProto:
    message = descriptor_pb2.DescriptorProto(name=name)
    message.field.extend(fields)
    return message


def _ingestion_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="malachite/ingestion/v2/ingestion.proto",
        package=_INGESTION_PACKAGE,
        syntax="proto3",
        dependency=["google/protobuf/timestamp.proto"],
    )
    prefix = f".{_INGESTION_PACKAGE}"
    file_proto.message_type.extend(
        [
            _message(
                "Label",
                _field("key", 1, _F.TYPE_STRING, json_name="key"),
                _field("value", 2, _F.TYPE_STRING, json_name="value"),
            ),
            _message(
                "EventSource",
                _field("customer_id", 1, _F.TYPE_BYTES, json_name="customerId"),
                _field("collector_id", 2, _F.TYPE_BYTES, json_name="collectorId"),
                _field("filename", 3, _F.TYPE_STRING, json_name="filename"),
                _field("namespace", 4, _F.TYPE_STRING, json_name="namespace"),
                _field("labels", 5, _F.TYPE_MESSAGE, json_name="labels", type_name=f"{prefix}.Label", repeated=True),
            ),
            _message(
                "LogEntry",
                _field("timestamp", 1, _F.TYPE_MESSAGE, json_name="timestamp", type_name=".google.protobuf.Timestamp"),
                _field(
                    "collection_time",
                    2,
                    _F.TYPE_MESSAGE,
                    json_name="collectionTime",
                    type_name=".google.protobuf.Timestamp",
                ),
                _field("data", 3, _F.TYPE_BYTES, json_name="data"),
            ),
            _message(
                "LogEntryBatch",
                _field("start_time", 1, _F.TYPE_MESSAGE, json_name="startTime", type_name=".google.protobuf.Timestamp"),
                _field("entries", 2, _F.TYPE_MESSAGE, json_name="entries", type_name=f"{prefix}.LogEntry", repeated=True),
                _field("log_type", 3, _F.TYPE_STRING, json_name="logType"),
                _field("source", 4, _F.TYPE_MESSAGE, json_name="source", type_name=f"{prefix}.EventSource"),
                _field("hint", 5, _F.TYPE_STRING, json_name="hint"),
            ),
            _message(
                "BatchCreateLogsRequest",
                _field("batch", 1, _F.TYPE_MESSAGE, json_name="batch", type_name=f"{prefix}.LogEntryBatch"),
            ),
        ]
    )
    return file_proto


def _http_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="chronicle_http.proto",
        syntax="proto3",
        dependency=["google/protobuf/timestamp.proto"],
    )

    log_label = _message(
        "LogLabel",
        _field("value", 1, _F.TYPE_STRING, json_name="value"),
        _field("rbac_enabled", 2, _F.TYPE_BOOL, json_name="rbacEnabled"),
    )
    labels_entry = _message(
        "LabelsEntry",
        _field("key", 1, _F.TYPE_STRING, json_name="key"),
        _field("value", 2, _F.TYPE_MESSAGE, json_name="value", type_name=".Log.LogLabel"),
    )
    labels_entry.options.map_entry = True

    log = _message(
        "Log",
        _field("name", 1, _F.TYPE_STRING, json_name="name"),
        _field("data", 2, _F.TYPE_BYTES, json_name="data"),
        _field("log_entry_time", 3, _F.TYPE_MESSAGE, json_name="logEntryTime", type_name=".google.protobuf.Timestamp"),
        _field("collection_time", 4, _F.TYPE_MESSAGE, json_name="collectionTime", type_name=".google.protobuf.Timestamp"),
        _field("environment_namespace", 5, _F.TYPE_STRING, json_name="environmentNamespace"),
        _field("labels", 6, _F.TYPE_MESSAGE, json_name="labels", type_name=".Log.LabelsEntry", repeated=True),
    )
    log.nested_type.extend([labels_entry, log_label])

    inline_source = _message(
        "LogsInlineSource",
        _field("logs", 1, _F.TYPE_MESSAGE, json_name="logs", type_name=".Log", repeated=True),
        _field("forwarder", 2, _F.TYPE_STRING, json_name="forwarder"),
        _field("source_filename", 3, _F.TYPE_STRING, json_name="sourceFilename"),
    )
    import_request = _message(
        "ImportLogsRequest",
        _field("parent", 1, _F.TYPE_STRING, json_name="parent"),
        _field(
            "inline_source",
            2,
            _F.TYPE_MESSAGE,
            json_name="inlineSource",
            type_name=".ImportLogsRequest.LogsInlineSource",
            oneof_index=0,
        ),
        _field("hint", 4, _F.TYPE_STRING, json_name="hint"),
    )
    import_request.nested_type.append(inline_source)
    import_request.oneof_decl.add(name="source")

    file_proto.message_type.extend([log, import_request])
    return file_proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(timestamp_pb2.DESCRIPTOR.serialized_pb)
_POOL.AddSerializedFile(_ingestion_file().SerializeToString())
_POOL.AddSerializedFile(_http_file().SerializeToString())


def _message_class(full_name: str) -> Any:
    return message_factory.GetMessageClass(_POOL.FindMessageTypeByName(full_name))


Timestamp = _message_class("google.protobuf.Timestamp")

Label = _message_class(f"{_INGESTION_PACKAGE}.Label")
EventSource = _message_class(f"{_INGESTION_PACKAGE}.EventSource")
LogEntry = _message_class(f"{_INGESTION_PACKAGE}.LogEntry")
LogEntryBatch = _message_class(f"{_INGESTION_PACKAGE}.LogEntryBatch")
BatchCreateLogsRequest = _message_class(f"{_INGESTION_PACKAGE}.BatchCreateLogsRequest")

Log = _message_class("Log")
ImportLogsRequest = _message_class("ImportLogsRequest")
LogsInlineSource = _message_class("ImportLogsRequest.LogsInlineSource")


def timestamp(ns: int) -> Any:
    """Build a Timestamp from epoch nanoseconds."""
    seconds, nanos = divmod(ns, 1_000_000_000)
    return Timestamp(seconds=seconds, nanos=nanos)
