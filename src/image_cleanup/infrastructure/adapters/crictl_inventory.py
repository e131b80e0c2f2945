"""CrictlInventory — ImageInventoryPort implementation via the crictl CLI."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from image_cleanup.domain.errors import InventoryError
from image_cleanup.domain.models import Image
from image_cleanup.domain.types import ImageId

if TYPE_CHECKING:
    from image_cleanup.domain.ports import ImageInventoryPort

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT: float = 120.0


class CrictlInventory:
    """List and remove images through ``crictl`` subprocess calls.

    Implements the ImageInventoryPort protocol. Every failure (non-zero exit,
    timeout, missing binary, unparseable JSON) surfaces as InventoryError.
    """

    if TYPE_CHECKING:
        _protocol_check: ImageInventoryPort

    def __init__(self, binary: str = "crictl", timeout_seconds: float = _DEFAULT_TIMEOUT) -> None:
        self._binary = binary
        self._timeout = timeout_seconds

    async def list_images(self) -> list[Image]:
        """Return every cached image from ``crictl images --output=json``."""
        payload = _parse_json(await self._run("images", "--output=json"), "images")
        images = [
            Image(image_id=ImageId(entry["id"]), tags=tuple(entry.get("repoTags") or ()))
            for entry in payload.get("images") or []
            if entry.get("id")
        ]
        logger.debug("Retrieved %d images", len(images))
        return images

    async def list_in_use_image_ids(self) -> frozenset[ImageId]:
        """Return image refs of all containers, running or exited."""
        payload = _parse_json(await self._run("ps", "-a", "--output=json"), "containers")
        used = frozenset(
            ImageId(container["imageRef"])
            for container in payload.get("containers") or []
            if container.get("imageRef")
        )
        logger.debug("Retrieved %d used images", len(used))
        return used

    async def remove_image(self, image_id: ImageId) -> None:
        """Delete one image with ``crictl rmi``."""
        try:
            await self._run("rmi", str(image_id))
        except InventoryError as exc:
            raise InventoryError(f"Failed to remove image {image_id}: {exc.message}") from exc
        logger.debug("Removed image %s", image_id)

    async def _run(self, *args: str) -> bytes:
        """Execute crictl with ``args`` and return stdout; stderr is folded into errors."""
        command = " ".join((self._binary, *args))
        try:
            proc = await asyncio.create_subprocess_exec(
                self._binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise InventoryError(f"Failed to execute {command}: {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise InventoryError(f"{command} timed out after {self._timeout:.0f}s") from exc
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

        if proc.returncode != 0:
            output = (stderr or stdout).decode(errors="replace").strip()
            raise InventoryError(f"{command} exited with code {proc.returncode}: {output}")
        return stdout


def _parse_json(raw: bytes, key: str) -> dict[str, Any]:
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InventoryError(f"Failed to parse crictl {key} output: {exc}") from exc
    if not isinstance(payload, dict):
        raise InventoryError(f"Unexpected crictl {key} output: expected a JSON object")
    return payload
