"""gRPC wire helpers: ``google.protobuf.Struct`` payloads for every RPC.

All services in this system exchange JSON-shaped documents, so every
method uses the well-known :class:`~google.protobuf.struct_pb2.Struct`
message.  Callers and servicers work with plain ``dict`` objects; this
module converts at the channel boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Callable, Mapping

import grpc
from google.protobuf import json_format
from google.protobuf.struct_pb2 import Struct
from google.protobuf.timestamp_pb2 import Timestamp

CATALOG_SERVICE = "movierec.CatalogService"
PROFILE_SERVICE = "movierec.ProfileService"
RECOMMENDER_SERVICE = "movierec.RecommenderService"

CATALOG_METHODS = ("GetMovieCatalogue",)
PROFILE_METHODS = ("LoadProfiles", "SaveFeedback")
RECOMMENDER_METHODS = (
    "GetRecommendations",
    "RecordFeedback",
    "GetSavedRecommendations",
    "GetTrendingRecommendations",
    "GetRecommendationExplanation",
    "GetSimilarUserRecommendations",
    "GetRecommendationStats",
)


def encode(payload: Mapping[str, Any]) -> bytes:
    """Serialise a JSON-shaped mapping as a ``Struct`` message."""
    message = Struct()
    message.update(dict(payload))
    return message.SerializeToString()


def decode(data: bytes) -> dict[str, Any]:
    """Parse a serialised ``Struct`` message back into a ``dict``."""
    return json_format.MessageToDict(Struct.FromString(data))


def make_stub(channel: grpc.Channel, service: str, methods: tuple[str, ...]) -> Any:
    """Return a client stub exposing one unary callable per method name.

    Each callable takes a ``dict`` request and returns a ``dict`` response,
    e.g. ``stub.GetMovieCatalogue({})``.

    Args:
        channel: An open gRPC channel.
        service: Fully qualified service name.
        methods: RPC method names to expose.
    """
    return SimpleNamespace(
        **{
            name: channel.unary_unary(
                f"/{service}/{name}",
                request_serializer=encode,
                response_deserializer=decode,
            )
            for name in methods
        }
    )


def add_servicer_to_server(
    servicer: Any, server: grpc.Server, service: str, methods: tuple[str, ...]
) -> None:
    """Register *servicer*'s methods on *server* under *service*.

    Every method must have the signature ``(request: dict, context) -> dict``.
    """
    handlers: dict[str, grpc.RpcMethodHandler] = {}
    for name in methods:
        behaviour: Callable[[dict[str, Any], grpc.ServicerContext], dict[str, Any]]
        behaviour = getattr(servicer, name)
        handlers[name] = grpc.unary_unary_rpc_method_handler(
            behaviour,
            request_deserializer=decode,
            response_serializer=encode,
        )
    server.add_generic_rpc_handlers(
        (grpc.method_handlers_generic_handler(service, handlers),)
    )


# ---------------------------------------------------------------------------
# Timestamp helpers
# ---------------------------------------------------------------------------


def datetime_to_wire(dt: datetime) -> str:
    """Format a ``datetime`` as an RFC 3339 string; naive values are UTC."""
    ts = Timestamp()
    ts.FromDatetime(dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc))
    return ts.ToJsonString()


def wire_to_datetime(value: str) -> datetime:
    """Parse an RFC 3339 string into a UTC-aware ``datetime``."""
    ts = Timestamp()
    ts.FromJsonString(value)
    return ts.ToDatetime(tzinfo=timezone.utc)
