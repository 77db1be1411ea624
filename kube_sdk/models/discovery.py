"""Pydantic models for the API discovery endpoints."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _DiscoveryModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VersionInfo(_DiscoveryModel):
    """Server version returned by ``GET /version``."""

    major: str = ""
    minor: str = ""
    git_version: str = ""
    git_commit: str = ""
    git_tree_state: str = ""
    build_date: str = ""
    go_version: str = ""
    compiler: str = ""
    platform: str = ""


class GroupVersionForDiscovery(_DiscoveryModel):
    group_version: str
    version: str


class ServerAddressByClientCIDR(_DiscoveryModel):
    client_cidr: str = Field(alias="clientCIDR")
    server_address: str


class APIGroup(_DiscoveryModel):
    """A named API group and the versions it serves."""

    name: str
    versions: list[GroupVersionForDiscovery] = Field(default_factory=list)
    preferred_version: GroupVersionForDiscovery | None = None
    server_address_by_client_cidrs: list[ServerAddressByClientCIDR] = Field(
        default_factory=list, alias="serverAddressByClientCIDRs"
    )


class APIGroupList(_DiscoveryModel):
    """Groups returned by ``GET /apis``."""

    groups: list[APIGroup] = Field(default_factory=list)


class APIResource(_DiscoveryModel):
    """A resource served within a group version."""

    name: str
    singular_name: str = ""
    namespaced: bool
    kind: str
    verbs: list[str] = Field(default_factory=list)
    group: str | None = None
    version: str | None = None
    short_names: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    storage_version_hash: str | None = None


class APIResourceList(_DiscoveryModel):
    """Resources returned by ``GET /apis/{group-version}`` and ``GET /api/{version}``."""

    group_version: str
    resources: list[APIResource] = Field(default_factory=list)


class APIVersions(_DiscoveryModel):
    """Core group versions returned by ``GET /api``."""

    versions: list[str] = Field(default_factory=list)
    server_address_by_client_cidrs: list[ServerAddressByClientCIDR] = Field(
        default_factory=list, alias="serverAddressByClientCIDRs"
    )
