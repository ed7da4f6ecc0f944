"""Tests for provider descriptor models."""

from conftest import make_descriptor
from imagerelay.models.descriptors import (
    ENV_PRIORITY,
    ProviderDescriptor,
    ProviderFamily,
    ProviderOrigin,
    mask_secret,
)


def test_mask_secret_keeps_prefix_and_length():
    assert mask_secret("sk-live-abcdef123456") == "sk-l…(20 chars)"


def test_mask_secret_hides_short_keys():
    assert mask_secret("abc123") == "***(6 chars)"
    assert mask_secret("") == "<empty>"


def test_log_label_carries_masked_credential():
    descriptor = make_descriptor("openai", family=ProviderFamily.OPENAI, credential="sk-live-abcdef123456")

    label = descriptor.log_label()

    assert label == "openai (openai-openai-0, key sk-l…(20 chars))"
    assert "sk-live-abcdef123456" not in label
    assert "sk-live-abcdef123456" not in repr(descriptor)


def test_env_origin_forces_priority_zero():
    descriptor = ProviderDescriptor(
        id="gemini-env",
        display_name="Google Gemini",
        family=ProviderFamily.GEMINI,
        origin=ProviderOrigin.ENV,
        credential="k",
        priority=7,
    )

    assert descriptor.priority == ENV_PRIORITY


def test_missing_fields_lists_blank_dispatch_fields():
    descriptor = make_descriptor(credential=" ", model="")

    assert descriptor.missing_fields() == ["credential", "model"]
