"""Layer 1 tests — engine verification plus the signer binding check."""

from __future__ import annotations

from dba_verifier.claim import build_claim_document, canonical_json
from dba_verifier.layer_one import verify_layer_one
from dba_verifier.models import AquaTreeWrapper, FileObject, LogType, StageStatus, TradeNameDetails
from dba_verifier.result import Ok

URL = "https://example-registry.gov/x"


def _signed_wrapper(engine, details: TradeNameDetails, credentials) -> AquaTreeWrapper:
    content = canonical_json(build_claim_document(details, URL))
    file_object = FileObject(file_name="info.json", file_content=content, path="./info.json")
    genesis = engine.create_genesis_revision(file_object)
    assert isinstance(genesis, Ok)
    signed = engine.sign_aqua_tree(
        AquaTreeWrapper(aqua_tree=genesis.value, file_object=file_object), "cli", credentials
    )
    assert isinstance(signed, Ok)
    return AquaTreeWrapper(aqua_tree=signed.value, file_object=file_object)


def _codes(result) -> set[str]:
    return {e.code for e in result.errors}


class TestBindingCheck:
    def test_case_only_difference_passes(self, engine, credentials):
        engine.signer = "acme llc"
        wrapper = _signed_wrapper(engine, TradeNameDetails(trade_name="Acme LLC"), credentials)
        result = verify_layer_one(engine, wrapper, credentials)
        assert result.status == StageStatus.PASSED
        assert result.binding_passed is True
        assert result.revision_count == 2
        assert result.signer_address == "acme llc"
        assert result.trade_name == "Acme LLC"

    def test_non_case_difference_fails_despite_engine_pass(self, engine, credentials):
        engine.signer = "acme, llc"
        wrapper = _signed_wrapper(engine, TradeNameDetails(trade_name="Acme LLC"), credentials)
        result = verify_layer_one(engine, wrapper, credentials)
        assert result.engine_verified is True
        assert result.binding_passed is False
        assert result.status == StageStatus.FAILED
        assert "BINDING_MISMATCH" in _codes(result)

    def test_wallet_address_signer_fails(self, engine, credentials):
        engine.signer = "0xD36AAf65a91bB7dc69942cF6B6d1dBa4Ef171664"
        wrapper = _signed_wrapper(engine, TradeNameDetails(trade_name="Acme LLC"), credentials)
        result = verify_layer_one(engine, wrapper, credentials)
        assert result.status == StageStatus.FAILED

    def test_single_revision_fails(self, engine, credentials):
        content = canonical_json(build_claim_document(TradeNameDetails(trade_name="Acme LLC"), URL))
        file_object = FileObject(file_name="info.json", file_content=content, path="./info.json")
        genesis = engine.create_genesis_revision(file_object)
        assert isinstance(genesis, Ok)
        wrapper = AquaTreeWrapper(aqua_tree=genesis.value, file_object=file_object)

        result = verify_layer_one(engine, wrapper, credentials)
        assert result.engine_verified is True
        assert result.revision_count == 1
        assert result.status == StageStatus.FAILED
        assert "REVISION_COUNT_LOW" in _codes(result)

    def test_missing_signer_field_fails(self, engine, credentials):
        wrapper = _signed_wrapper(engine, TradeNameDetails(trade_name="Acme LLC"), credentials)
        for revision in wrapper.aqua_tree["revisions"].values():
            revision.pop("signature_wallet_address", None)
        result = verify_layer_one(engine, wrapper, credentials)
        assert result.binding_passed is False
        assert result.signer_address is None

    def test_empty_chain_reports_missing_genesis(self, engine, credentials):
        wrapper = AquaTreeWrapper(
            aqua_tree={"revisions": {}},
            file_object=FileObject(file_name="info.json", file_content="{}", path="./info.json"),
        )
        result = verify_layer_one(engine, wrapper, credentials)
        assert result.status == StageStatus.FAILED
        assert "GENESIS_NOT_FOUND" in _codes(result)


class TestEngineVerification:
    def test_engine_logs_kept_on_success(self, engine, credentials):
        wrapper = _signed_wrapper(engine, TradeNameDetails(trade_name="Acme LLC"), credentials)
        result = verify_layer_one(engine, wrapper, credentials)
        messages = [entry.message for entry in result.log]
        assert "AquaTree verified successfully" in messages
        assert "File hash matches" in messages

    def test_tampered_content_fails_but_binding_still_reported(self, engine, credentials):
        wrapper = _signed_wrapper(engine, TradeNameDetails(trade_name="Acme LLC"), credentials)
        tampered = wrapper.model_copy(
            update={
                "file_object": FileObject(
                    file_name="info.json", file_content="{}", path="./info.json"
                )
            }
        )
        result = verify_layer_one(engine, tampered, credentials)
        assert result.engine_verified is False
        assert result.binding_passed is True
        assert result.status == StageStatus.FAILED
        assert "CHAIN_INTEGRITY_FAILED" in _codes(result)
        assert any(
            e.log_type == LogType.ERROR and e.message == "File hash does not match"
            for e in result.log
        )

    def test_engine_exception_is_contained(self, engine, credentials):
        wrapper = _signed_wrapper(engine, TradeNameDetails(trade_name="Acme LLC"), credentials)
        engine.raise_on_verify = True
        result = verify_layer_one(engine, wrapper, credentials)
        assert result.status == StageStatus.FAILED
        assert result.engine_verified is False
        assert result.binding_passed is True
        assert "CHAIN_INTEGRITY_FAILED" in _codes(result)
