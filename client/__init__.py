"""Client package for chunklink.

Contains the chunk server link client:
- link: LinkChunkServerClient, LinkState

Note: run_client and ExitCode are not exported here so that importing the link
client does not pull in the controller. Import them from client.runner.
"""

from client.link import LinkChunkServerClient, LinkState

__all__ = [
    "LinkChunkServerClient",
    "LinkState",
]
