# src/promptloop/providers/base.py
"""
Abstract Base Class for model clients.

A model client is the only network-facing collaborator of the loop engine:
it receives the conversation payload and the tool catalog and returns the
model's reply together with the tool calls it requests. Concrete clients
for specific endpoints live outside this package.
"""

import abc
from typing import List, Optional, Sequence

from ..models import Message, ModelResponse, Tool


class BaseModelClient(abc.ABC):
    """
    Abstract Base Class for model endpoint integrations.

    Implementations must be safe to call from several loops at once; the
    engine never calls ``send`` concurrently within one loop.
    """

    @abc.abstractmethod
    def get_name(self) -> str:
        """
        Return the identifier name for this client.

        Used in error messages and logs, e.g. "openai" or "scripted".
        """
        pass

    @abc.abstractmethod
    async def send(
        self,
        messages: Sequence[Message],
        tools: List[Tool],
        model: Optional[str] = None,
    ) -> ModelResponse:
        """
        Send the conversation to the model endpoint.

        Args:
            messages: The full conversation payload, oldest first. The last
                      message is either the pending user prompt or the
                      results of the previous round of tool calls.
            tools: Tools the model may request, in registration order.
            model: The model identifier to use.

        Returns:
            The reply text and the requested tool calls, in the order the
            model returned them.

        Raises:
            EndpointError: For transport or protocol failures. Clients own any
                           retry policy; the engine does not retry.
        """
        pass

    async def close(self) -> None:
        """
        Clean up any resources used by the client, such as network sessions.
        Clients without resources can use this default.
        """
        pass
