"""Named Akhet API operations.

:class:`AkhetClient` adds one method per server endpoint on top of
:class:`~akhetclient.client.pipeline.RequestPipeline`. Each method only
assembles the request payload and picks the resource path, method and
cache policy:

- :meth:`host_info` -- GET ``hostinfo``
- :meth:`list_images` -- GET ``imageslocal``
- :meth:`list_images_online` -- GET ``imagesonline``
- :meth:`create_instance` -- POST ``instance``
- :meth:`get_instance_info` -- GET ``instance``
- :meth:`get_instance_resolution_info` -- GET ``instance-resolution``
- :meth:`set_instance_resolution` -- POST ``instance-resolution``

The three listing calls go through the GET cache when one is attached;
the instance calls always bypass it.
"""

from __future__ import annotations

from typing import Any, Mapping, Union

from akhetclient.client.pipeline import RequestPipeline
from akhetclient.exceptions import ServerNotAvailable
from akhetclient.models import HTTPMethod, InstanceConfig, ResolutionRequest


class AkhetClient(RequestPipeline):
    """Client for an Akhet server.

    Accepts the same arguments as
    :class:`~akhetclient.client.pipeline.RequestPipeline`.

    Example::

        with AkhetClient("akhet.local", "admin", "secret") as client:
            token = client.create_instance({"image": "ubuntu", "user": "alice"})
            client.set_instance_resolution(token, 1280, 720)
    """

    def host_info(self) -> Any:
        """Return the server's host information."""
        return self.execute("hostinfo")

    def list_images(self) -> Any:
        """Return the images available locally on the server."""
        return self.execute("imageslocal")

    def list_images_online(self) -> Any:
        """Return the images available from the online registry."""
        return self.execute("imagesonline")

    def create_instance(self, config: Union[InstanceConfig, Mapping[str, Any]]) -> str:
        """Create an instance and return its token.

        Args:
            config: An :class:`~akhetclient.models.InstanceConfig`, or a
                mapping of instance options. Unknown keys in a mapping are
                dropped with a warning.

        Returns:
            The instance token assigned by the server.

        Raises:
            ServerNotAvailable: If the response carries no ``token``.
        """
        if not isinstance(config, InstanceConfig):
            config = InstanceConfig.from_mapping(config)
        result = self.execute(
            "instance", HTTPMethod.POST.value, config.to_payload(), bypass_cache=True
        )
        if not isinstance(result, Mapping) or "token" not in result:
            raise ServerNotAvailable("The server did not return an instance token")
        return result["token"]

    def get_instance_info(self, token: str) -> Any:
        """Return the state of the instance identified by *token*."""
        return self.execute("instance", HTTPMethod.GET.value, {"token": token}, bypass_cache=True)

    def get_instance_resolution_info(self, token: str) -> Any:
        """Return the current and available display resolutions of an instance."""
        return self.execute(
            "instance-resolution", HTTPMethod.GET.value, {"token": token}, bypass_cache=True
        )

    def set_instance_resolution(self, token: str, width: int, height: int) -> Any:
        """Change the display resolution of an instance."""
        request = ResolutionRequest(token=token, width=width, height=height)
        return self.execute(
            "instance-resolution",
            HTTPMethod.POST.value,
            request.model_dump(),
            bypass_cache=True,
        )
