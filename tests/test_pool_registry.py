"""
Tests for the contract-backed pool registry.

The JSON-RPC client is replaced by an in-process fake that answers
getPoolParameters from a dict, so no chain is contacted.
"""

import json
import os
import tempfile
import unittest

from web3.exceptions import ContractLogicError

from relayer.core.offer_service import OfferService
from relayer.core.order_types import NULL_ADDRESS, OfferKind
from relayer.core.pool_registry import PoolNotFoundError, Web3PoolRegistry, pool_parameter_names
from relayer.storage.order_store import OrderStore

from tests.factories import DATA_PROVIDER, EXCHANGE, TOKEN_A, add_liquidity_offer, make_settings

POOL_ABI = [
    {
        "type": "function",
        "name": "getPoolParameters",
        "stateMutability": "view",
        "inputs": [{"name": "_poolId", "type": "uint256"}],
        "outputs": [{
            "name": "",
            "type": "tuple",
            "components": [
                {"name": "referenceAsset", "type": "string"},
                {"name": "floor", "type": "uint256"},
                {"name": "collateralToken", "type": "address"},
                {"name": "dataProvider", "type": "address"},
            ],
        }],
    },
]

CHECKSUM_TOKEN = "0x" + "A" * 40


class FakeCall:

    def __init__(self, contract, pool_id):
        self.contract = contract
        self.pool_id = pool_id

    def call(self):
        self.contract.requested.append(self.pool_id)
        if self.pool_id in self.contract.reverting:
            raise ContractLogicError("execution reverted")
        return self.contract.pools.get(self.pool_id, ("", 0, NULL_ADDRESS, NULL_ADDRESS))


class FakeContract:

    def __init__(self, pools, reverting=()):
        self.pools = pools
        self.reverting = set(reverting)
        self.requested = []
        self.functions = self

    def getPoolParameters(self, pool_id):  # noqa: N802
        return FakeCall(self, pool_id)


class FakeEth:

    def __init__(self, contract):
        self._contract = contract
        self.addresses = []

    def contract(self, address, abi):
        self.addresses.append(address)
        return self._contract


class FakeWeb3:

    def __init__(self, contract):
        self.eth = FakeEth(contract)


class TestWeb3PoolRegistry(unittest.TestCase):
    """Test cases for reading pool parameters from the contract."""

    def setUp(self):
        """Set up a registry for chain 1 over a fake client."""
        self.contract = FakeContract(
            {5: ("ETH/USD", 100, CHECKSUM_TOKEN, DATA_PROVIDER)},
            reverting={7},
        )
        self.clients = {}

        def web3_factory(rpc_url):
            client = FakeWeb3(self.contract)
            self.clients[rpc_url] = client
            return client

        self.registry = Web3PoolRegistry({1: "https://rpc.example"}, POOL_ABI, web3_factory=web3_factory)

    def test_reads_struct_by_component_name(self):
        """Test the struct output is mapped by name and addresses lowercased."""
        parameters = self.registry.get_pool_parameters("5", 1, EXCHANGE)

        self.assertEqual(parameters.reference_asset, "ETH/USD")
        self.assertEqual(parameters.collateral_token, TOKEN_A)
        self.assertEqual(parameters.data_provider, DATA_PROVIDER)
        self.assertEqual(self.contract.requested, [5])

    def test_one_client_per_chain(self):
        """Test the client for a chain is built once and reused."""
        self.registry.get_pool_parameters("5", 1, EXCHANGE)
        self.registry.get_pool_parameters("5", 1, EXCHANGE)

        self.assertEqual(list(self.clients), ["https://rpc.example"])
        self.assertEqual(len(self.clients["https://rpc.example"].eth.addresses), 2)

    def test_empty_pool_not_found(self):
        """Test a zeroed pool answer means the pool does not exist."""
        with self.assertRaises(PoolNotFoundError):
            self.registry.get_pool_parameters("6", 1, EXCHANGE)

    def test_revert_not_found(self):
        """Test a reverted call means the pool does not exist."""
        with self.assertRaises(PoolNotFoundError):
            self.registry.get_pool_parameters("7", 1, EXCHANGE)

    def test_unknown_chain(self):
        """Test a chain without an RPC endpoint cannot resolve pools."""
        with self.assertRaises(PoolNotFoundError) as ctx:
            self.registry.get_pool_parameters("5", 137, EXCHANGE)
        self.assertIn("137", str(ctx.exception))
        self.assertEqual(self.clients, {})

    def test_missing_contract(self):
        """Test a pool without a verifying contract cannot be resolved."""
        for contract in (None, NULL_ADDRESS):
            with self.assertRaises(PoolNotFoundError):
                self.registry.get_pool_parameters("5", 1, contract)

    def test_offer_service_overwrites_from_contract(self):
        """Test add-liquidity offers take their pool attributes from the contract."""
        store = OrderStore.from_url("sqlite://")
        try:
            service = OfferService(store, self.registry)
            service.submit_offer(OfferKind.ADD_LIQUIDITY, add_liquidity_offer("0x02"))

            stored = service.get_offer_by_hash(OfferKind.ADD_LIQUIDITY, "0x02")
            self.assertEqual(stored.reference_asset, "ETH/USD")
            self.assertEqual(stored.collateral_token, TOKEN_A)
        finally:
            store.engine.dispose()


class TestPoolContractAbi(unittest.TestCase):
    """Test cases for loading the pool contract ABI."""

    def test_output_names(self):
        """Test struct components are flattened in ABI order."""
        self.assertEqual(
            pool_parameter_names(POOL_ABI),
            ("referenceAsset", "floor", "collateralToken", "dataProvider"),
        )

    def test_abi_without_function(self):
        """Test an ABI lacking getPoolParameters is rejected."""
        with self.assertRaises(ValueError):
            pool_parameter_names([{"type": "function", "name": "other", "outputs": []}])

    def test_abi_missing_outputs(self):
        """Test an ABI whose outputs lack a pool attribute is rejected."""
        abi = [{"type": "function", "name": "getPoolParameters",
                "outputs": [{"name": "referenceAsset", "type": "string"}]}]
        with self.assertRaises(ValueError) as ctx:
            pool_parameter_names(abi)
        self.assertIn("collateralToken", str(ctx.exception))

    def test_from_settings_reads_artifact(self):
        """Test a compiler artifact wrapping the ABI is accepted."""
        with tempfile.TemporaryDirectory() as tmp_dir:
            abi_path = os.path.join(tmp_dir, "pool.json")
            with open(abi_path, "w") as abi_file:
                json.dump({"abi": POOL_ABI}, abi_file)
            settings = make_settings(
                chain_rpc_urls={1: "https://rpc.example"},
                pool_contract_abi_file=abi_path,
            )

            registry = Web3PoolRegistry.from_settings(settings)

        self.assertEqual(registry.rpc_urls, {1: "https://rpc.example"})
        self.assertEqual(registry.contract_abi, POOL_ABI)


if __name__ == '__main__':
    unittest.main()
