"""
Pool registry.

The registry is the source of truth for a pool's identifying attributes.
On a live deployment it reads them from the protocol contract over each
chain's JSON-RPC endpoint; the static registry serves development setups
and tests.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from .order_types import NULL_ADDRESS

logger = logging.getLogger(__name__)

POOL_PARAMETERS_FUNCTION = "getPoolParameters"


@dataclass(frozen=True)
class PoolParameters:
    reference_asset: str
    collateral_token: str
    data_provider: str


class PoolNotFoundError(LookupError):
    """Raised when the registry has no pool with the requested id."""

    def __init__(self, pool_id: str, reason: str = "not found in registry"):
        self.pool_id = pool_id
        super().__init__(f"Pool {pool_id} {reason}")


class PoolRegistry(ABC):

    @abstractmethod
    def get_pool_parameters(self, pool_id: str, chain_id: int,
                            verifying_contract: Optional[str] = None) -> PoolParameters:
        """
        Read the canonical parameters of a pool.

        Raises:
            PoolNotFoundError: If the pool does not exist
        """


class StaticPoolRegistry(PoolRegistry):
    """Registry over a fixed mapping of (chain id, pool id) to parameters."""

    def __init__(self, pools: Optional[Dict[tuple, PoolParameters]] = None):
        self.pools: Dict[tuple, PoolParameters] = dict(pools or {})

    def register_pool(self, chain_id: int, pool_id: str, parameters: PoolParameters) -> None:
        self.pools[(chain_id, str(pool_id))] = parameters
        logger.debug(f"Registered pool {pool_id} on chain {chain_id}")

    def get_pool_parameters(self, pool_id: str, chain_id: int,
                            verifying_contract: Optional[str] = None) -> PoolParameters:
        try:
            return self.pools[(chain_id, str(pool_id))]
        except KeyError:
            raise PoolNotFoundError(pool_id)


def pool_parameter_names(contract_abi: List[Dict[str, Any]]) -> Tuple[str, ...]:
    """
    Names of the values ``getPoolParameters`` returns, in ABI order.

    A single struct output is flattened to its component names.

    Raises:
        ValueError: If the ABI has no usable ``getPoolParameters`` entry
    """
    for entry in contract_abi:
        if entry.get("type") == "function" and entry.get("name") == POOL_PARAMETERS_FUNCTION:
            outputs = entry.get("outputs") or []
            if len(outputs) == 1 and outputs[0].get("components"):
                outputs = outputs[0]["components"]
            names = tuple(output.get("name", "") for output in outputs)
            missing = {"referenceAsset", "collateralToken", "dataProvider"} - set(names)
            if missing:
                raise ValueError(f"{POOL_PARAMETERS_FUNCTION} outputs lack: {', '.join(sorted(missing))}")
            return names
    raise ValueError(f"Contract ABI has no {POOL_PARAMETERS_FUNCTION} function")


def _pool_id_argument(pool_id: str) -> Any:
    # uint256 ids travel as decimal strings, bytes32 ids as hex
    return int(pool_id) if str(pool_id).isdigit() else pool_id


def _http_web3(rpc_url: str) -> Web3:
    return Web3(Web3.HTTPProvider(rpc_url))


class Web3PoolRegistry(PoolRegistry):
    """
    Registry reading pool parameters from the protocol contract.

    The contract is the pool's verifying contract, called on the chain the
    pool lives on. One client is kept per chain.
    """

    def __init__(
        self,
        rpc_urls: Mapping[int, str],
        contract_abi: List[Dict[str, Any]],
        web3_factory: Callable[[str], Any] = _http_web3,
    ):
        """
        Initialize the registry.

        Args:
            rpc_urls: JSON-RPC endpoint per chain id
            contract_abi: ABI of the pool contract
            web3_factory: Builds a client for an endpoint
        """
        self.rpc_urls = dict(rpc_urls)
        self.contract_abi = contract_abi
        self.output_names = pool_parameter_names(contract_abi)
        self._web3_factory = web3_factory
        self._clients: Dict[int, Any] = {}
        self._lock = threading.Lock()

        logger.info(f"Web3 pool registry initialized for chains {sorted(self.rpc_urls)}")

    @classmethod
    def from_settings(cls, settings) -> 'Web3PoolRegistry':
        """Build the registry from CHAIN_RPC_URLS and POOL_CONTRACT_ABI_FILE."""
        with open(settings.pool_contract_abi_file) as abi_file:
            abi = json.load(abi_file)
        # Compiler artifacts wrap the ABI list
        if isinstance(abi, dict):
            abi = abi["abi"]
        return cls(settings.chain_rpc_urls, abi)

    def _client(self, chain_id: int, pool_id: str) -> Any:
        with self._lock:
            client = self._clients.get(chain_id)
            if client is None:
                rpc_url = self.rpc_urls.get(chain_id)
                if rpc_url is None:
                    raise PoolNotFoundError(pool_id, reason=f"is on chain {chain_id}, which has no RPC endpoint")
                client = self._web3_factory(rpc_url)
                self._clients[chain_id] = client
            return client

    def get_pool_parameters(self, pool_id: str, chain_id: int,
                            verifying_contract: Optional[str] = None) -> PoolParameters:
        if not verifying_contract or verifying_contract.lower() == NULL_ADDRESS:
            raise PoolNotFoundError(pool_id, reason="has no contract to read parameters from")

        w3 = self._client(chain_id, pool_id)
        contract = w3.eth.contract(address=Web3.to_checksum_address(verifying_contract), abi=self.contract_abi)
        try:
            result = contract.functions.getPoolParameters(_pool_id_argument(pool_id)).call()
        except (ContractLogicError, BadFunctionCallOutput) as e:
            logger.warning(f"Pool {pool_id} lookup on chain {chain_id} failed: {str(e)}")
            raise PoolNotFoundError(pool_id)

        pool = dict(zip(self.output_names, result))
        # The contract answers unknown ids with an empty pool
        if str(pool["collateralToken"]).lower() == NULL_ADDRESS:
            raise PoolNotFoundError(pool_id)

        logger.debug(f"Read parameters of pool {pool_id} on chain {chain_id}")
        return PoolParameters(
            reference_asset=pool["referenceAsset"],
            collateral_token=str(pool["collateralToken"]).lower(),
            data_provider=str(pool["dataProvider"]).lower(),
        )
