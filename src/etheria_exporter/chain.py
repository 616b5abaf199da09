"""
Chain Data Access

Read-only view of the two Etheria contracts a tile export needs:
- the map contract (getBlocks, getName) holds per-tile build data
- the block-definition contract (getOccupies) holds block footprints

The decoders only depend on the ChainDataSource protocol. Two
implementations ship here: an in-memory source for fixtures and a web3
JSON-RPC source for live reads. Whatever the RPC client raises is passed
through untouched; nothing in this package retries a read.
"""

import logging
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Protocol, Sequence, Tuple

from .errors import UnsupportedVersionError

logger = logging.getLogger(__name__)

Offset = Tuple[int, int, int]


class ContractPair(NamedTuple):
    """Map contract and block-definition contract of one Etheria version."""
    etheria: str
    bds: str


VERSIONS: Dict[str, ContractPair] = {
    "0.9": ContractPair(
        etheria="0xe468d26721b703d224d05563cb64746a7a40e1f4",
        bds="0x782bdf7015b71b64f6750796dd087fde32fd6fdc",
    ),
    "1.0": ContractPair(
        etheria="0xe414716f017b5c1457bf98e985bccb135dff81f2",
        bds="0x782bdf7015b71b64f6750796dd087fde32fd6fdc",
    ),
    "1.1": ContractPair(
        etheria="0x169332ae7d143e4b5c6baedb2fef77bfbddb4011",
        bds="0xd4e686a1fbf1bfe058510f07cd3936d3d5a70589",
    ),
    "1.2": ContractPair(
        etheria="0xb21f8684f23dbb1008508b4de91a0aaedebdb7e4",
        bds="0xd4e686a1fbf1bfe058510f07cd3936d3d5a70589",
    ),
}

ETHERIA_ABI = [
    {
        "name": "getBlocks",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "col", "type": "uint8"},
            {"name": "row", "type": "uint8"},
        ],
        "outputs": [{"name": "", "type": "int8[5][]"}],
    },
    {
        "name": "getName",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "col", "type": "uint8"},
            {"name": "row", "type": "uint8"},
        ],
        "outputs": [{"name": "", "type": "string"}],
    },
]

BDS_ABI = [
    {
        "name": "getOccupies",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "which", "type": "uint8"}],
        "outputs": [{"name": "", "type": "int8[24]"}],
    },
]


def contracts_for_version(version: str) -> ContractPair:
    """Contract addresses for a version string such as "1.2"."""
    try:
        return VERSIONS[str(version)]
    except KeyError:
        raise UnsupportedVersionError(str(version), list(VERSIONS)) from None


class OldBuildBlock(NamedTuple):
    """One placed block of an old build."""
    block_type: int
    x: int
    y: int
    z: int
    color: int

    @classmethod
    def from_raw(cls, raw: Sequence[int]) -> "OldBuildBlock":
        """Build from the contract's int8[5] (type, x, y, z, color)."""
        return cls(*(int(v) for v in raw[:5]))


def occupies_to_triplets(raw: Sequence[int]) -> List[Offset]:
    """Split the 24 signed bytes of getOccupies into 8 (dx, dy, dz) offsets."""
    values = [int(v) for v in raw]
    return [
        (values[i], values[i + 1], values[i + 2])
        for i in range(0, len(values) - 2, 3)
    ]


class ChainDataSource(Protocol):
    """The three chain reads a tile export needs."""

    def get_blocks(self, col: int, row: int) -> List[OldBuildBlock]:
        ...

    def get_name(self, col: int, row: int) -> str:
        ...

    def get_occupies(self, block_type: int) -> Optional[Sequence[int]]:
        ...


class InMemoryChainDataSource:
    """
    Fixture-backed ChainDataSource.

    Missing tiles raise KeyError, the same way a failed live read surfaces
    as an exception. Unknown block types return None.
    """

    def __init__(
        self,
        blocks: Optional[Mapping[Tuple[int, int], Iterable]] = None,
        names: Optional[Mapping[Tuple[int, int], str]] = None,
        occupies: Optional[Mapping[int, Sequence[int]]] = None
    ):
        self.blocks = {
            key: [b if isinstance(b, OldBuildBlock) else OldBuildBlock.from_raw(b) for b in value]
            for key, value in (blocks or {}).items()
        }
        self.names = dict(names or {})
        self.occupies = {int(k): list(v) for k, v in (occupies or {}).items()}
        self.occupies_calls: Dict[int, int] = {}

    def get_blocks(self, col: int, row: int) -> List[OldBuildBlock]:
        return list(self.blocks[(col, row)])

    def get_name(self, col: int, row: int) -> str:
        return self.names[(col, row)]

    def get_occupies(self, block_type: int) -> Optional[Sequence[int]]:
        self.occupies_calls[block_type] = self.occupies_calls.get(block_type, 0) + 1
        return self.occupies.get(block_type)


class Web3ChainDataSource:
    """
    Live ChainDataSource over Ethereum JSON-RPC.

    Requires the optional `web3` dependency (pip install etheria-tile-exporter[chain]).
    """

    def __init__(self, rpc_url: str, version: str = "1.2", timeout: float = 30.0):
        """
        Initialize the data source.

        Args:
            rpc_url: Ethereum mainnet JSON-RPC endpoint
            version: Etheria version selecting the contract pair
            timeout: HTTP request timeout in seconds
        """
        from web3 import Web3

        self.version = str(version)
        self.contracts = contracts_for_version(self.version)

        self._w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self._etheria = self._w3.eth.contract(
            address=Web3.to_checksum_address(self.contracts.etheria), abi=ETHERIA_ABI
        )
        self._bds = self._w3.eth.contract(
            address=Web3.to_checksum_address(self.contracts.bds), abi=BDS_ABI
        )

    def get_blocks(self, col: int, row: int) -> List[OldBuildBlock]:
        raw = self._etheria.functions.getBlocks(col, row).call()
        logger.debug("getBlocks(%d, %d) -> %d blocks", col, row, len(raw))
        return [OldBuildBlock.from_raw(b) for b in raw]

    def get_name(self, col: int, row: int) -> str:
        name = self._etheria.functions.getName(col, row).call()
        logger.debug("getName(%d, %d) -> %d chars", col, row, len(name))
        return name

    def get_occupies(self, block_type: int) -> Optional[Sequence[int]]:
        return list(self._bds.functions.getOccupies(block_type).call())
