"""
The user directory's capabilities.

Resources:
    users          users://all               every stored record
    user-details   users://{userId}/profile  one record by id
Tools:
    create-user         store a user from explicit fields
    create-random-user  ask the peer to invent a user, then store it
Prompts:
    generate-fake-user  prompt asking a model for a user with a given name

Handler failures that are domain outcomes (write failed, lookup missed,
generation unusable) come back as ordinary content, never as errors.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from mcp.types import PromptMessage, TextContent
from pydantic import ValidationError

from .channel import ReverseChannel
from .errors import SamplingError, StoreError
from .models import (
    CapabilityAnnotations,
    CapabilityKind,
    ResourceContent,
    SampleMessage,
    SampleRequest,
    UserFields,
)
from .registry import CapabilityDescriptor, CapabilityRegistry
from .store import UserStore

logger = logging.getLogger("userhub.capabilities")

JSON_MIME = "application/json"

USER_NOT_FOUND = "User not found"
SAVE_FAILED = "Failed to save user"
GENERATE_FAILED = "Failed to generate user data"

RANDOM_USER_PROMPT = (
    "Generate fake user data. The user should have a realistic name, email, "
    "address, and phone number. Return this data as a JSON object with no other "
    "text or formatter so it can be used with JSON.parse."
)

USER_SCHEMA = {
    "name": "string",
    "email": "string",
    "address": "string",
    "phone": "string",
}

_FENCE_OPEN = re.compile(r"^\s*```[\w-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?[ \t]*```\s*$")


def strip_code_fence(text: str) -> str:
    """Remove a surrounding Markdown code fence, if present."""
    text = _FENCE_OPEN.sub("", text, count=1)
    text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _created(user_id: int) -> list[TextContent]:
    return _text(f"User {user_id} created successfully")


class UserCapabilities:
    """Handlers for the user directory, bound to one store and one channel.

    Args:
        store: Where users are read from and appended to.
        channel: Reverse channel used by ``create-random-user``.
        max_tokens: Output cap sent with the reverse request.
    """

    def __init__(self, store: UserStore, channel: ReverseChannel, max_tokens: int = 1024) -> None:
        self.store = store
        self.channel = channel
        self.max_tokens = max_tokens

    # -- resources ------------------------------------------------------

    async def all_users(self, uri: str, params: dict[str, str]) -> list[ResourceContent]:
        """Every stored record as one JSON list."""
        users = [u.model_dump() for u in self.store.get_all()]
        return [ResourceContent(uri=uri, text=json.dumps(users), mime_type=JSON_MIME)]

    async def user_details(self, uri: str, params: dict[str, str]) -> list[ResourceContent]:
        """One record by id; a bad or unknown id yields an error payload."""
        raw_id = params.get("userId", "")
        user_id = int(raw_id) if raw_id.isascii() and raw_id.isdigit() else None

        user = next((u for u in self.store.get_all() if u.id == user_id), None)
        if user is None:
            payload = json.dumps({"error": USER_NOT_FOUND})
        else:
            payload = json.dumps(user.model_dump())
        return [ResourceContent(uri=uri, text=payload, mime_type=JSON_MIME)]

    # -- tools ----------------------------------------------------------

    async def create_user(self, arguments: dict[str, Any]) -> list[TextContent]:
        """Store a user from explicit fields."""
        try:
            record = self.store.append(UserFields(**arguments))
        except (StoreError, ValidationError) as exc:
            logger.warning("create-user failed: %s", exc)
            return _text(SAVE_FAILED)
        return _created(record.id)

    async def create_random_user(self, arguments: dict[str, Any]) -> list[TextContent]:
        """Ask the peer for a plausible user as JSON, validate it, store it."""
        request = SampleRequest(
            messages=[SampleMessage(role="user", text=RANDOM_USER_PROMPT)],
            max_tokens=self.max_tokens,
        )
        try:
            result = await self.channel.request_sample(request)
        except SamplingError as exc:
            logger.warning("create-random-user: sampling failed: %s", exc)
            return _text(GENERATE_FAILED)

        if result.content_type != "text" or result.text is None:
            logger.warning("create-random-user: got %s content, expected text",
                           result.content_type)
            return _text(GENERATE_FAILED)

        try:
            data = json.loads(strip_code_fence(result.text))
            record = self.store.append(UserFields(**data))
        except (json.JSONDecodeError, TypeError, ValidationError, StoreError) as exc:
            logger.warning("create-random-user: unusable generation: %s", exc)
            return _text(GENERATE_FAILED)
        logger.info("create-random-user: user %d generated by %s", record.id, result.model)
        return _created(record.id)

    # -- prompts --------------------------------------------------------

    async def generate_fake_user(self, arguments: dict[str, Any]) -> list[PromptMessage]:
        """Prompt asking a model to invent a user with the given name."""
        name = arguments["name"]
        return [
            PromptMessage(
                role="user",
                content=TextContent(
                    type="text",
                    text=(
                        f"Generate a fake user with the name {name}. The user "
                        "should have a realistic email, address, and phone number."
                    ),
                ),
            )
        ]

    # -- registration ---------------------------------------------------

    def descriptors(self) -> list[CapabilityDescriptor]:
        """The directory's descriptors, in advertisement order."""
        return [
            CapabilityDescriptor(
                name="users",
                kind=CapabilityKind.RESOURCE,
                handler=self.all_users,
                uri="users://all",
                mime_type=JSON_MIME,
                annotations=CapabilityAnnotations(
                    title="Users",
                    description="Get all users data from the database",
                ),
            ),
            CapabilityDescriptor(
                name="user-details",
                kind=CapabilityKind.RESOURCE_TEMPLATE,
                handler=self.user_details,
                uri="users://{userId}/profile",
                mime_type=JSON_MIME,
                annotations=CapabilityAnnotations(
                    title="User details",
                    description="Get user's details from the database",
                ),
            ),
            CapabilityDescriptor(
                name="create-user",
                kind=CapabilityKind.TOOL,
                handler=self.create_user,
                schema=USER_SCHEMA,
                annotations=CapabilityAnnotations(
                    title="Create User",
                    description="Create a new user in the database",
                    mutates=True,
                    idempotent=False,
                    world_open=True,
                ),
            ),
            CapabilityDescriptor(
                name="create-random-user",
                kind=CapabilityKind.TOOL,
                handler=self.create_random_user,
                annotations=CapabilityAnnotations(
                    title="Create Random User",
                    description="Create a random user with fake data",
                    mutates=True,
                    idempotent=False,
                    world_open=True,
                ),
            ),
            CapabilityDescriptor(
                name="generate-fake-user",
                kind=CapabilityKind.PROMPT,
                handler=self.generate_fake_user,
                schema={"name": "string"},
                annotations=CapabilityAnnotations(
                    title="Generate Fake User",
                    description="Generate a fake user based on a given name",
                ),
            ),
        ]

    def register(self, registry: CapabilityRegistry) -> None:
        """Add every descriptor to *registry*."""
        for descriptor in self.descriptors():
            registry.register(descriptor)
