"""Tests for lab instance identity."""

import re

import pytest

from labctl.lab import SUFFIX_LENGTH, LabInstance, generate_suffix


class TestGenerateSuffix:
    def test_format(self):
        suffix = generate_suffix()
        assert re.fullmatch(r"[a-z0-9]{6}", suffix)
        assert len(suffix) == SUFFIX_LENGTH

    def test_ten_thousand_suffixes_do_not_collide(self):
        suffixes = [generate_suffix() for _ in range(10000)]
        assert len(set(suffixes)) == len(suffixes)

    def test_custom_length(self):
        assert len(generate_suffix(10)) == 10


class TestLabInstance:
    def test_names_derive_from_suffix(self):
        lab = LabInstance.create("x1y2z3")
        assert lab.name_prefix == "akslabx1y2z3"
        assert lab.resource_group == "rg-akslabx1y2z3"
        assert lab.rg_stack == "akslabx1y2z3-rg"
        assert lab.sub_stack == "akslabx1y2z3-sub"
        assert lab.default_cluster_name == "akslabx1y2z3-aks"
        assert lab.default_registry_login_server == "akslabx1y2z3acr.azurecr.io"

    def test_create_generates_suffix(self):
        first, second = LabInstance.create(), LabInstance.create()
        assert first.name_prefix != second.name_prefix

    def test_from_prefix_round_trips(self):
        lab = LabInstance.create("abc123")
        assert LabInstance.from_prefix(lab.name_prefix) == lab

    @pytest.mark.parametrize("prefix", ["akslab", "rg-akslababc123", "other"])
    def test_from_prefix_rejects_foreign_names(self, prefix):
        with pytest.raises(ValueError):
            LabInstance.from_prefix(prefix)

    def test_state_dir_is_per_instance(self, tmp_path):
        lab = LabInstance.create("abc123")
        assert lab.state_dir(tmp_path) == tmp_path / "akslababc123"
