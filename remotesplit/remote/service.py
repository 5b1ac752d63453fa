"""
gRPC service hosting a sibling entrypoint.

The sibling exposes a single unary method, ``/remotesplit.Sibling/Invoke``,
carrying serialized requests and replies as raw bytes, next to the standard
gRPC health service.
"""

import asyncio
import logging
import signal
from typing import Optional, Tuple

import grpc
from grpc_health.v1 import health_pb2_grpc
from grpc_health.v1.health_pb2 import HealthCheckResponse

from ..core.exceptions import SerializationError
from ..serialization import PickleSerializer, Serializer
from .resolver import SiblingEntrypoint
from .wire import SERVICE_NAME, error_reply

logger = logging.getLogger(__name__)

SERVER_OPTIONS = [
    ('grpc.max_receive_message_length', -1),
    ('grpc.max_send_message_length', -1),
]


async def process_payload(
    entrypoint: SiblingEntrypoint,
    payload: bytes,
    serializer: Optional[Serializer] = None,
) -> bytes:
    """Decode one request, serve it and encode the reply."""
    serializer = serializer or PickleSerializer()
    try:
        request = serializer.deserialize(payload)
    except SerializationError as e:
        logger.warning(f"Rejected undecodable request: {e}")
        return serializer.serialize(error_reply(e))

    reply = await entrypoint.handle(request)
    try:
        return serializer.serialize(reply)
    except SerializationError as e:
        logger.error(f"Reply could not be serialized: {e}")
        return serializer.serialize(error_reply(e))


class SiblingServicer:
    """Serves Invoke calls against one entrypoint."""

    def __init__(self, entrypoint: SiblingEntrypoint, serializer: Optional[Serializer] = None):
        self.entrypoint = entrypoint
        self.serializer = serializer or PickleSerializer()

    async def Invoke(self, request: bytes, context: grpc.aio.ServicerContext) -> bytes:
        return await process_payload(self.entrypoint, request, self.serializer)

    def handler(self) -> grpc.GenericRpcHandler:
        return grpc.method_handlers_generic_handler(
            SERVICE_NAME,
            {"Invoke": grpc.unary_unary_rpc_method_handler(self.Invoke)},
        )


class HealthServicer(health_pb2_grpc.HealthServicer):
    """Health check servicer for the sibling server."""

    async def Check(self, request, context):
        """Perform health check."""
        return HealthCheckResponse(
            status=HealthCheckResponse.SERVING
        )


def create_server(
    entrypoint: SiblingEntrypoint,
    address: str = "0.0.0.0:50052",
    serializer: Optional[Serializer] = None,
) -> Tuple[grpc.aio.Server, int]:
    """
    Create a gRPC server for ``entrypoint`` bound to ``address``.

    Returns:
        The unstarted server and the port actually bound
    """
    server = grpc.aio.server(options=SERVER_OPTIONS)
    server.add_generic_rpc_handlers((SiblingServicer(entrypoint, serializer).handler(),))
    health_pb2_grpc.add_HealthServicer_to_server(HealthServicer(), server)
    port = server.add_insecure_port(address)
    return server, port


async def serve(
    entrypoint: SiblingEntrypoint,
    address: str = "0.0.0.0:50052",
    grace: float = 10.0,
) -> None:
    """Run a sibling server until it is stopped by SIGINT or SIGTERM."""
    server, port = create_server(entrypoint, address)

    logger.info(f"Starting {type(entrypoint).__name__} on {address} (port {port})")
    await server.start()

    loop = asyncio.get_running_loop()

    def signal_handler(signum):
        logger.info(f"Received signal {signum}, shutting down...")
        asyncio.ensure_future(server.stop(grace=grace))

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, signal_handler, signum)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {signum} not supported on this platform")

    await server.wait_for_termination()
    logger.info("Server stopped")
