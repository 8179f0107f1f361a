from pathlib import Path

import pytest

from nexus_stark import Config

SIGNER_KEY = "0x5f3c9a1e8b7d6c4a2f1e0d9c8b7a6f5e4d3c2b1a"
GUARDIAN_KEY = "0x1a2b3c4d5e6f708192a3b4c5d6e7f8091a2b3c4d"
OTHER_KEY = "0x7e57ab1e"

ACCOUNT_ADDRESS = "0x4b3f2e7c1d0a9b8c7d6e5f40312a1b0c9d8e7f60"
CONTRACT_A = "0xa11ce"
CONTRACT_B = "0xb0b"


class FakeContract:
    """In-memory contract: felt-only ABI, records every interaction."""

    def __init__(self, address, inputs=None, outputs=None, call_results=None,
                 execute_response=None, fail_invoke=False):
        self.address = address
        self.inputs = inputs or {}
        self.outputs = outputs or {}
        self.call_results = call_results or {}
        self.execute_response = execute_response
        self.fail_invoke = fail_invoke
        self.interactions = []

    def adapt_input(self, function_name, args):
        expected = self.inputs.get(function_name)
        if expected is None:
            raise KeyError(f"Unknown function {function_name}")
        if set(args) != set(expected):
            raise ValueError(f"{function_name} expects {expected}, got {sorted(args)}")

        calldata = []
        for name in expected:
            value = args[name]
            if isinstance(value, (list, tuple)):
                calldata.append(len(value))
                calldata.extend(value)
            else:
                calldata.append(value)
        return calldata

    def adapt_output(self, function_name, raw):
        return dict(zip(self.outputs[function_name], raw))

    def output_size(self, function_name, raw):
        return len(self.outputs[function_name])

    async def invoke(self, function_name, args=None, options=None):
        self.interactions.append(("invoke", function_name, args, options))
        if self.fail_invoke:
            raise RuntimeError("Transaction rejected")
        return hex(0x7a000 + len(self.interactions))

    async def call(self, function_name, args=None, options=None):
        self.interactions.append(("call", function_name, args, options))
        if function_name == "__execute__":
            return self.execute_response
        return self.call_results[function_name]

    async def estimate_fee(self, function_name, args=None, options=None):
        self.interactions.append(("estimate_fee", function_name, args, options))
        return {"amount": 2500, "unit": "wei"}

    def dispatched(self):
        return [i for i in self.interactions if i[1] == "__execute__"]


class FakeFactory:
    def __init__(self, contract):
        self.contract = contract
        self.deployments = []
        self.bound_addresses = []

    async def deploy(self, constructor_args=None, options=None):
        self.deployments.append((constructor_args, options))
        return self.contract

    def get_contract_at(self, address):
        self.bound_addresses.append(address)
        return self.contract


class FakeRuntime:
    def __init__(self, contract):
        self.factory = FakeFactory(contract)
        self.contract_paths = []

    async def get_contract_factory(self, contract_path):
        self.contract_paths.append(contract_path)
        return self.factory


class StubResolver:
    def __init__(self):
        self.requests = []

    def resolve(self, account_type, artifacts_name, version):
        self.requests.append((account_type, artifacts_name, version))
        return Path("artifacts") / account_type / version / f"{artifacts_name}.cairo"


class NonceCounter:
    """Nonce source returning a fixed value and counting reads."""

    def __init__(self, nonce=0):
        self.nonce = nonce
        self.reads = []

    async def __call__(self, address):
        self.reads.append(address)
        return self.nonce


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("NEXUS_STARK_CONFIG", str(tmp_path / "config.json"))
    Config._instance = None
    yield
    Config._instance = None


@pytest.fixture
def contract_a():
    return FakeContract(
        CONTRACT_A,
        inputs={"foo": ["x"], "baz": ["y", "z"]},
        outputs={"foo": ["res"], "baz": ["low", "high"]},
    )


@pytest.fixture
def contract_b():
    return FakeContract(CONTRACT_B, inputs={"bar": []}, outputs={"bar": ["balance"]})
