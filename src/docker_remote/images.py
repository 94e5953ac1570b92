"""
Docker Images API
"""

import os
import logging
from typing import Any, Dict, List, Union

from .models import Model, call
from .options import (
    BuildOptions,
    ListImagesOptions,
    OptionsLike,
    PruneOptions,
    PullOptions,
    RemoveImageOptions,
    TagOptions,
)
from .streams import DockerStream
from .tar_utils import create_tar_from_directory

logger = logging.getLogger(__name__)


class Image(Model):
    """Docker Image object"""

    def __repr__(self):
        return f"<Image: {self.tags[0] if self.tags else self.short_id}>"

    @property
    def tags(self) -> List[str]:
        if not self.attrs:
            return []
        return [tag for tag in (self.attrs.get('RepoTags') or []) if tag != '<none>:<none>']

    async def status(self) -> 'Image':
        """Refresh this image's data"""
        result = await call(self.http, 'image.inspect', id=self.id)
        return self._snapshot(result.value)

    async def history(self) -> List[Dict[str, Any]]:
        """Layer history of this image"""
        result = await call(self.http, 'image.history', id=self.id)
        return result.value or []

    async def tag(self, opts: OptionsLike = None) -> 'Image':
        """
        Tag this image into a repository

        Args:
            opts: TagOptions or mapping with repo and tag
        """
        await call(self.http, 'image.tag', opts, TagOptions, id=self.id)
        return self

    async def delete(self, opts: OptionsLike = None) -> List[Dict[str, str]]:
        """
        Remove this image

        Args:
            opts: RemoveImageOptions or mapping (force, noprune)

        Returns:
            List of {'Untagged': ...} / {'Deleted': ...} entries
        """
        result = await call(self.http, 'image.delete', opts, RemoveImageOptions, id=self.id)
        return result.value or []


class ImageCollection:
    """Docker Images collection"""

    def __init__(self, http):
        self.http = http

    def get(self, name: str) -> Image:
        """Image handle for a known name or ID (no request is made)"""
        return Image(self.http, name)

    async def list(self, opts: OptionsLike = None) -> List[Image]:
        """
        List images

        Args:
            opts: ListImagesOptions or mapping (all, filters, digests)

        Returns:
            List of Image objects in the order the daemon returned them
        """
        result = await call(self.http, 'image.list', opts, ListImagesOptions)
        return [Image(self.http, img_data['Id'], img_data) for img_data in result.value or []]

    async def create(self, opts: OptionsLike = None) -> DockerStream:
        """
        Pull an image from a registry

        Args:
            opts: PullOptions or mapping (fromImage, tag, platform)

        Returns:
            Stream of JSON progress messages
        """
        result = await call(self.http, 'image.create', opts, PullOptions, multiplexed=False)
        return result.stream

    async def build(self, context: Union[bytes, str], opts: OptionsLike = None) -> DockerStream:
        """
        Build image from a Dockerfile

        Args:
            context: Tar archive of the build context, or a directory to archive
            opts: BuildOptions or mapping (t, dockerfile, buildargs, ...)

        Returns:
            Stream of JSON build messages
        """
        if isinstance(context, str):
            if not os.path.isdir(context):
                raise ValueError(f"Build context is not a directory: {context}")
            logger.debug(f"Packing build context {context}")
            context = create_tar_from_directory(context, arcname='.')

        headers = {'Content-Type': 'application/x-tar'}
        result = await call(self.http, 'image.build', opts, BuildOptions,
                            data=context, headers=headers, multiplexed=False)
        return result.stream

    async def prune(self, opts: OptionsLike = None) -> Dict[str, Any]:
        """
        Remove unused images

        Args:
            opts: PruneOptions or mapping with filters

        Returns:
            Dict with deleted images and reclaimed space
        """
        result = await call(self.http, 'image.prune', opts, PruneOptions)
        return result.value or {}
