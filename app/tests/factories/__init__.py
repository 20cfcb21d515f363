"""Test data factories for deterministic test data generation."""

from tests.factories.records import (
    delete_record,
    make_assignment,
    make_capability_type,
    make_collaboration_cache,
    make_credential,
    make_tenant,
    make_user,
    seed,
    update_record,
)

__all__ = [
    "make_assignment",
    "make_capability_type",
    "make_collaboration_cache",
    "make_credential",
    "make_tenant",
    "make_user",
    "seed",
    "update_record",
    "delete_record",
]
