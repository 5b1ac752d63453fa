"""
Channels carrying requests from the main unit to a sibling.

Every channel exposes ``invoke(path, args, kwargs, target)`` returning the
decoded result or raising the error the reply carries.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional, Sequence

import grpc
from grpc_health.v1 import health_pb2, health_pb2_grpc

from ..core.exceptions import TransportError
from ..serialization import PickleSerializer, Serializer
from .resolver import SiblingEntrypoint
from .service import SERVER_OPTIONS, process_payload
from .wire import INVOKE_METHOD, RemoteReference, make_request, unwrap_reply

logger = logging.getLogger(__name__)


class LocalChannel:
    """
    Channel to an entrypoint in the same process.

    Requests still make the full serialize/deserialize round trip so that
    results behave exactly as they would across a process boundary.
    """

    def __init__(self, entrypoint: SiblingEntrypoint, serializer: Optional[Serializer] = None):
        self.entrypoint = entrypoint
        self.serializer = serializer or PickleSerializer()

    async def invoke(
        self,
        path: Sequence[str],
        args: Sequence[Any] = (),
        kwargs: Optional[Dict[str, Any]] = None,
        target: Optional[RemoteReference] = None,
    ) -> Any:
        payload = self.serializer.serialize(make_request(path, args, kwargs, target))
        reply = await process_payload(self.entrypoint, payload, self.serializer)
        return unwrap_reply(self.serializer.deserialize(reply))


class GrpcChannel:
    """
    Channel to a sibling served over gRPC.

    The underlying ``grpc.aio`` channel is opened on first use, inside the
    event loop that makes the call.
    """

    def __init__(
        self,
        address: str,
        timeout: Optional[float] = None,
        serializer: Optional[Serializer] = None,
    ):
        self.address = address
        self.timeout = timeout
        self.serializer = serializer or PickleSerializer()
        self._channel: Optional[grpc.aio.Channel] = None
        self._invoke = None

    def _connect(self):
        if self._channel is None:
            self._channel = grpc.aio.insecure_channel(self.address, options=SERVER_OPTIONS)
            self._invoke = self._channel.unary_unary(INVOKE_METHOD)
            logger.debug(f"Opened channel to sibling at {self.address}")
        return self._invoke

    async def invoke(
        self,
        path: Sequence[str],
        args: Sequence[Any] = (),
        kwargs: Optional[Dict[str, Any]] = None,
        target: Optional[RemoteReference] = None,
    ) -> Any:
        payload = self.serializer.serialize(make_request(path, args, kwargs, target))
        call = self._connect()
        try:
            reply = await call(payload, timeout=self.timeout)
        except grpc.aio.AioRpcError as e:
            logger.error(f"Call to sibling at {self.address} failed: {e.code()}")
            raise TransportError(
                f"Sibling at {self.address} unavailable: {e.code().name}: {e.details()}"
            ) from e
        return unwrap_reply(self.serializer.deserialize(reply))

    async def close(self) -> None:
        if self._channel is not None:
            await self._channel.close()
            self._channel = None
            self._invoke = None
            logger.debug(f"Closed channel to sibling at {self.address}")

    async def __aenter__(self) -> "GrpcChannel":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"GrpcChannel({self.address!r})"


async def wait_until_serving(address: str, timeout: float = 30.0, interval: float = 0.5) -> None:
    """
    Poll the sibling's health service until it reports SERVING.

    Raises:
        TransportError: The sibling did not become healthy within ``timeout``
    """
    deadline = time.monotonic() + timeout
    last_error = None
    async with grpc.aio.insecure_channel(address) as channel:
        stub = health_pb2_grpc.HealthStub(channel)
        while True:
            try:
                response = await stub.Check(health_pb2.HealthCheckRequest(), timeout=interval)
                if response.status == health_pb2.HealthCheckResponse.SERVING:
                    logger.info(f"Sibling at {address} is serving")
                    return
            except grpc.aio.AioRpcError as e:
                last_error = e.code().name
            if time.monotonic() >= deadline:
                raise TransportError(
                    f"Sibling at {address} not serving after {timeout}s"
                    + (f" (last error: {last_error})" if last_error else "")
                )
            await asyncio.sleep(interval)
