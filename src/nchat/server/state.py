"""
Server State

Holds the in-memory group and member sets of a chat server.
"""

import logging
from typing import List, Optional, Set

from ..schemas import Endpoint

logger = logging.getLogger(__name__)

DEFAULT_GROUP = "global"


class ServerState:
    """
    Holds all local in-memory state for a chat server.

    Membership is flat: an endpoint that joins any known group is part of
    the single broadcast pool. Members never expire.

    Responsibilities:
    - Track known group names
    - Track member endpoints
    """

    def __init__(self, groups: Optional[List[str]] = None):
        self.groups: Set[str] = set()
        self.members: Set[Endpoint] = set()

        for name in groups if groups is not None else [DEFAULT_GROUP]:
            self.add_group(name)

    def add_group(self, name: str) -> bool:
        """
        Register a group name. Returns False if it was already known.
        """
        if name in self.groups:
            return False
        self.groups.add(name)
        logger.info(f"Registered group '{name}'")
        return True

    def group_exists(self, name: str) -> bool:
        """
        Returns True if a group with the given name is known.
        """
        return name in self.groups

    def add_member(self, address: Endpoint) -> bool:
        """
        Add an endpoint to the broadcast pool. Returns False if it was
        already a member.
        """
        address = _normalize(address)
        if address in self.members:
            return False
        self.members.add(address)
        return True

    def remove_member(self, address: Endpoint) -> bool:
        """
        Remove an endpoint from the broadcast pool.

        Removing a non-member is a no-op and returns False.
        """
        address = _normalize(address)
        if address not in self.members:
            return False
        self.members.discard(address)
        return True

    def is_member(self, address: Endpoint) -> bool:
        return _normalize(address) in self.members

    def list_members(self) -> List[Endpoint]:
        """
        Returns a sorted snapshot of the member endpoints.
        """
        return sorted(self.members)


def _normalize(address) -> Endpoint:
    # IPv6 socket addresses carry flowinfo and scope id
    return address[0], address[1]
