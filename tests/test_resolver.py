"""Tests for network target resolution."""

import dataclasses
import logging

import pytest

from shipwright import config
from shipwright.errors import (
    MalformedSecretError,
    MissingCredentialsError,
    UnknownNetworkError,
)
from shipwright.models import GAS_PRICE_DYNAMIC, KIND_MNEMONIC, KIND_PRIVATE_KEY
from shipwright.resolver import NetworkResolver, list_signer_addresses
from shipwright.secret_store import SecretSource


class TestResolveDeclaredNetworks:
    """Resolution of the networks declared in config.NETWORKS."""

    @pytest.mark.parametrize("network", list(config.NETWORKS))
    def test_every_declared_network_resolves_to_its_name(self, resolver, network):
        target = resolver.resolve(network)
        assert target.name == network

    def test_qa_target(self, resolver, hardhat_accounts):
        target = resolver.resolve("qa")

        assert target.name == "qa"
        assert target.rpc_endpoint == "http://192.168.1.9:8545/"
        assert target.chain_id == 31338
        assert target.gas_price == 2000000000
        assert [c.reference for c in target.signing_credentials] == ["qa_deployer", "qa_operator"]
        assert [c.secret for c in target.signing_credentials] == [
            hardhat_accounts[1][0],
            hardhat_accounts[2][0],
        ]
        assert all(c.kind == KIND_PRIVATE_KEY for c in target.signing_credentials)

    def test_ropsten_without_url_resolves_unusable(self, resolver):
        target = resolver.resolve("ropsten")

        assert target.rpc_endpoint == ""
        assert not target.is_usable
        assert target.chain_id is None
        assert target.gas_price == GAS_PRICE_DYNAMIC
        assert target.signing_credentials == ()

    def test_resolve_all(self, resolver):
        targets = resolver.resolve_all()
        assert list(targets) == list(config.NETWORKS)

    def test_networks_in_declaration_order(self, resolver):
        assert resolver.networks() == ["ropsten", "qa", "localhost", "klaytn"]
        assert resolver.has_network("qa")
        assert not resolver.has_network("QA")


class TestUnknownNetwork:
    """Requests for undeclared networks."""

    def test_unknown_network_raises(self, resolver):
        with pytest.raises(UnknownNetworkError) as exc_info:
            resolver.resolve("does-not-exist")
        assert exc_info.value.network == "does-not-exist"
        assert "qa" in exc_info.value.known

    def test_match_is_case_sensitive(self, resolver):
        with pytest.raises(UnknownNetworkError):
            resolver.resolve("QA")

    def test_empty_name_raises(self, resolver):
        with pytest.raises(UnknownNetworkError):
            resolver.resolve("")


class TestEnvironmentOverrides:
    """Environment variables take precedence over static declarations."""

    def test_endpoint_override_wins(self, secrets):
        resolver = NetworkResolver(config.NETWORKS, secrets, environ={"QA_URL": "https://qa.example.org"})
        assert resolver.resolve("qa").rpc_endpoint == "https://qa.example.org"

    def test_endpoint_override_fills_empty_url(self, secrets):
        resolver = NetworkResolver(config.NETWORKS, secrets, environ={"ROPSTEN_URL": "https://ropsten.example.org"})
        target = resolver.resolve("ropsten")
        assert target.rpc_endpoint == "https://ropsten.example.org"
        assert target.is_usable

    def test_empty_override_falls_through(self, secrets):
        resolver = NetworkResolver(config.NETWORKS, secrets, environ={"QA_URL": ""})
        assert resolver.resolve("qa").rpc_endpoint == "http://192.168.1.9:8545/"

    def test_override_only_applies_to_its_network(self, secrets):
        resolver = NetworkResolver(config.NETWORKS, secrets, environ={"QA_URL": "https://qa.example.org"})
        assert resolver.resolve("localhost").rpc_endpoint == "http://localhost:8545/"

    def test_custom_url_env(self, secrets):
        networks = {"dev": {"url": "http://dev:8545", "url_env": "DEV_RPC"}}
        resolver = NetworkResolver(networks, secrets, environ={"DEV_RPC": "http://other:8545"})
        assert resolver.resolve("dev").rpc_endpoint == "http://other:8545"

    def test_private_key_override_replaces_declared_accounts(self, secrets, hardhat_accounts):
        key = hardhat_accounts[0][0]
        resolver = NetworkResolver(config.NETWORKS, secrets, environ={"PRIVATE_KEY": key})

        credentials = resolver.resolve("qa").signing_credentials

        assert len(credentials) == 1
        assert credentials[0].secret == key
        assert credentials[0].reference == "env:PRIVATE_KEY"

    def test_private_key_override_applies_without_declared_accounts(self, hardhat_accounts):
        key = hardhat_accounts[2][0]
        resolver = NetworkResolver(config.NETWORKS, SecretSource(), environ={"PRIVATE_KEY": key[2:]})

        credentials = resolver.resolve("ropsten").signing_credentials

        assert [c.secret for c in credentials] == [key]

    def test_private_key_override_skips_secret_lookup(self, hardhat_accounts):
        # localhost references "privatekey", which is absent, but the override wins
        resolver = NetworkResolver(
            config.NETWORKS, SecretSource(), environ={"PRIVATE_KEY": hardhat_accounts[0][0]}
        )
        assert len(resolver.resolve("localhost").signing_credentials) == 1

    def test_malformed_private_key_override_fails_at_construction(self, secrets):
        with pytest.raises(MalformedSecretError) as exc_info:
            NetworkResolver(config.NETWORKS, secrets, environ={"PRIVATE_KEY": "0x1234"})
        assert exc_info.value.reference == "env:PRIVATE_KEY"
        assert "0x1234" not in str(exc_info.value)

    def test_environment_is_snapshotted(self, secrets):
        environ = {}
        resolver = NetworkResolver(config.NETWORKS, secrets, environ=environ)
        environ["QA_URL"] = "https://late.example.org"
        assert resolver.resolve("qa").rpc_endpoint == "http://192.168.1.9:8545/"


class TestMissingSecrets:
    """A declared reference that the secret store does not hold."""

    def test_missing_secret_fails_by_default(self):
        resolver = NetworkResolver(config.NETWORKS, SecretSource(), environ={})

        with pytest.raises(MalformedSecretError) as exc_info:
            resolver.resolve("localhost")

        assert exc_info.value.reference == "privatekey"
        assert exc_info.value.network == "localhost"

    def test_missing_secret_skipped_when_allowed(self, caplog):
        resolver = NetworkResolver(config.NETWORKS, SecretSource(), environ={}, missing_secrets="skip")

        with caplog.at_level(logging.WARNING, logger="shipwright.resolver"):
            target = resolver.resolve("localhost")

        assert target.chain_id == 31337
        assert target.signing_credentials == ()
        assert "privatekey" in caplog.text

    def test_skip_keeps_available_signers(self, hardhat_accounts):
        secrets = SecretSource({"qa_operator": hardhat_accounts[2][0]})
        resolver = NetworkResolver(config.NETWORKS, secrets, environ={}, missing_secrets="skip")

        credentials = resolver.resolve("qa").signing_credentials

        assert [c.reference for c in credentials] == ["qa_operator"]

    def test_invalid_policy_rejected(self, secrets):
        with pytest.raises(ValueError):
            NetworkResolver(config.NETWORKS, secrets, environ={}, missing_secrets="ignore")


class TestRejectedSecrets:
    """Secret entries that failed validation when the store was loaded."""

    def test_referenced_bad_entry_fails_at_construction(self, secret_values):
        secret_values["qa_operator"] = "0xdeadbeef"

        with pytest.raises(MalformedSecretError) as exc_info:
            NetworkResolver(config.NETWORKS, SecretSource(secret_values), environ={})

        assert exc_info.value.reference == "qa_operator"
        assert exc_info.value.network == "qa"
        assert "deadbeef" not in str(exc_info.value)

    def test_unreferenced_bad_entry_is_ignored(self, secret_values, hardhat_accounts):
        secret_values["etherscan_key"] = "NOTAKEY123"
        resolver = NetworkResolver(config.NETWORKS, SecretSource(secret_values), environ={})

        assert list(list_signer_addresses(resolver.resolve("localhost"))) == [hardhat_accounts[0][1]]

    def test_bad_entry_replaced_by_key_override(self, hardhat_accounts):
        secrets = SecretSource({"privatekey": "0x1234"})
        resolver = NetworkResolver(
            {"localhost": {"url": "http://localhost:8545", "accounts": ["privatekey"]}},
            secrets,
            environ={"PRIVATE_KEY": hardhat_accounts[1][0]},
        )
        assert resolver.resolve("localhost").signing_credentials[0].reference == "env:PRIVATE_KEY"

    def test_mixed_case_reference_served_from_environment(self, hardhat_accounts):
        secrets = SecretSource.from_environ({"SHIPWRIGHT_SECRET_DEPLOYERKEY": hardhat_accounts[1][0]})
        resolver = NetworkResolver({"dev": {"url": "http://dev:8545", "accounts": ["deployerKey"]}}, secrets, environ={})

        credentials = resolver.resolve("dev").signing_credentials

        assert [c.secret for c in credentials] == [hardhat_accounts[1][0]]
        assert credentials[0].reference == "deployerKey"


class TestRequireSigner:
    """Callers that need at least one signer."""

    def test_require_signer_without_credentials(self, resolver):
        with pytest.raises(MissingCredentialsError) as exc_info:
            resolver.resolve("ropsten", require_signer=True)
        assert exc_info.value.network == "ropsten"

    def test_require_signer_after_skipped_secret(self):
        resolver = NetworkResolver(config.NETWORKS, SecretSource(), environ={}, missing_secrets="skip")
        with pytest.raises(MissingCredentialsError):
            resolver.resolve("klaytn", require_signer=True)

    def test_require_signer_satisfied(self, resolver):
        assert resolver.resolve("klaytn", require_signer=True).has_signer


class TestSecretStoreFallbacks:
    """Values supplied by secret-store entries keyed by network name."""

    def test_private_key_keyed_by_network(self, hardhat_accounts):
        secrets = SecretSource({"devnet": hardhat_accounts[1][0]})
        resolver = NetworkResolver({"devnet": {"url": "http://dev:8545"}}, secrets, environ={})

        credentials = resolver.resolve("devnet").signing_credentials

        assert [c.reference for c in credentials] == ["devnet"]

    def test_mnemonic_keyed_by_network(self, hardhat_mnemonic, hardhat_accounts):
        secrets = SecretSource({"devnet": hardhat_mnemonic})
        resolver = NetworkResolver({"devnet": {"url": "http://dev:8545"}}, secrets, environ={})

        credentials = resolver.resolve("devnet").signing_credentials

        assert len(credentials) == 20
        assert credentials[0].reference == "devnet/0"
        assert credentials[0].derivation_path == "m/44'/60'/0'/0/0"
        assert credentials[19].derivation_path == "m/44'/60'/0'/0/19"

    def test_declared_empty_accounts_skip_network_secret(self, hardhat_accounts):
        secrets = SecretSource({"devnet": hardhat_accounts[1][0]})
        resolver = NetworkResolver({"devnet": {"accounts": []}}, secrets, environ={})
        assert resolver.resolve("devnet").signing_credentials == ()

    def test_endpoint_keyed_by_network(self):
        secrets = SecretSource({"devnet_url": "https://rpc.example.org/v3/abc"})
        resolver = NetworkResolver({"devnet": {}}, secrets, environ={})
        assert resolver.resolve("devnet").rpc_endpoint == "https://rpc.example.org/v3/abc"

    def test_declared_url_beats_secret_endpoint(self):
        secrets = SecretSource({"devnet_url": "https://rpc.example.org/v3/abc"})
        resolver = NetworkResolver({"devnet": {"url": "http://dev:8545"}}, secrets, environ={})
        assert resolver.resolve("devnet").rpc_endpoint == "http://dev:8545"

    def test_endpoint_secret_with_wrong_kind(self, hardhat_accounts):
        secrets = SecretSource({"devnet_url": hardhat_accounts[0][0]})
        resolver = NetworkResolver({"devnet": {}}, secrets, environ={})
        with pytest.raises(MalformedSecretError):
            resolver.resolve("devnet")

    def test_endpoint_referenced_as_account(self):
        secrets = SecretSource({"rpc": "https://rpc.example.org"})
        resolver = NetworkResolver({"devnet": {"accounts": ["rpc"]}}, secrets, environ={})
        with pytest.raises(MalformedSecretError):
            resolver.resolve("devnet")


class TestHDAccounts:
    """Accounts derived from a mnemonic reference."""

    def test_hd_block(self, hardhat_mnemonic, hardhat_accounts):
        secrets = SecretSource({"mnemonic": hardhat_mnemonic})
        networks = {"dev": {"accounts": {"mnemonic": "mnemonic", "initial_index": 1, "count": 2}}}
        resolver = NetworkResolver(networks, secrets, environ={})

        target = resolver.resolve("dev")

        assert [c.reference for c in target.signing_credentials] == ["mnemonic/1", "mnemonic/2"]
        assert all(c.kind == KIND_MNEMONIC for c in target.signing_credentials)
        assert list(list_signer_addresses(target)) == [
            hardhat_accounts[1][1],
            hardhat_accounts[2][1],
        ]

    def test_hd_block_needs_mnemonic_secret(self, hardhat_accounts):
        secrets = SecretSource({"mnemonic": hardhat_accounts[0][0]})
        networks = {"dev": {"accounts": {"mnemonic": "mnemonic", "count": 1}}}
        resolver = NetworkResolver(networks, secrets, environ={})
        with pytest.raises(MalformedSecretError):
            resolver.resolve("dev")

    def test_mnemonic_reference_in_list_expands(self, hardhat_mnemonic, hardhat_accounts):
        secrets = SecretSource({"mnemonic": hardhat_mnemonic, "extra": hardhat_accounts[2][0]})
        resolver = NetworkResolver({"dev": {"accounts": ["extra", "mnemonic"]}}, secrets, environ={})

        credentials = resolver.resolve("dev").signing_credentials

        assert credentials[0].reference == "extra"
        assert credentials[1].reference == "mnemonic/0"
        assert len(credentials) == 21


class TestChainIdAndGasPrice:
    """Fields taken directly from the declaration."""

    def test_zero_chain_id_is_kept(self, secrets):
        resolver = NetworkResolver({"zero": {"chain_id": 0}}, secrets, environ={})
        assert resolver.resolve("zero").chain_id == 0

    def test_missing_chain_id_is_unspecified(self, secrets):
        resolver = NetworkResolver({"dev": {"url": "http://dev:8545"}}, secrets, environ={})
        assert resolver.resolve("dev").chain_id is None

    def test_gas_price_defaults_to_dynamic(self, secrets):
        resolver = NetworkResolver({"dev": {}}, secrets, environ={})
        target = resolver.resolve("dev")
        assert target.gas_price == GAS_PRICE_DYNAMIC
        assert target.uses_dynamic_gas_price


class TestSignerAddresses:
    """Address enumeration of resolved targets."""

    def test_no_credentials_gives_empty_sequence(self, resolver):
        addresses = list_signer_addresses(resolver.resolve("ropsten"))
        assert len(addresses) == 0
        assert list(addresses) == []

    def test_addresses_follow_credential_order(self, resolver, hardhat_accounts):
        addresses = list_signer_addresses(resolver.resolve("qa"))
        assert list(addresses) == [hardhat_accounts[1][1], hardhat_accounts[2][1]]

    def test_addresses_are_deterministic(self, resolver):
        target = resolver.resolve("qa")
        first = list_signer_addresses(target)

        assert list(first) == list(first)
        assert list(first) == list(list_signer_addresses(target))

    def test_addresses_do_not_mutate_target(self, resolver):
        target = resolver.resolve("localhost")
        before = target.signing_credentials
        list(list_signer_addresses(target))
        assert target.signing_credentials is before


class TestTargetSafety:
    """Resolved targets are immutable and keep secrets out of displays."""

    def test_target_is_frozen(self, resolver):
        target = resolver.resolve("qa")
        with pytest.raises(dataclasses.FrozenInstanceError):
            target.rpc_endpoint = "http://elsewhere"

    def test_repr_hides_secret(self, resolver, hardhat_accounts):
        target = resolver.resolve("qa")
        assert hardhat_accounts[1][0] not in repr(target)
        assert "qa_deployer" in repr(target)

    def test_describe_lists_references_only(self, resolver, hardhat_accounts):
        description = resolver.resolve("qa").describe()
        assert description == {
            "name": "qa",
            "url": "http://192.168.1.9:8545/",
            "chainId": 31338,
            "gasPrice": 2000000000,
            "accounts": ["qa_deployer", "qa_operator"],
        }
