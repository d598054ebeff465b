# SPDX-License-Identifier: MIT
"""Tests for portc.core.spec."""

import pytest

from portc.core.errors import ConfigureError
from portc.core.spec import PortSpec, object_path, target_type


class TestTargetType:
    @pytest.mark.parametrize(
        "target,expected",
        [
            ("priv/my_nif.so", "drv"),
            ("priv/my_nif.dll", "drv"),
            ("priv/helper", "exe"),
            ("priv/helper.exe", "exe"),
        ],
    )
    def test_known_extensions(self, target, expected):
        assert target_type(target) == expected

    def test_unknown_extension(self):
        with pytest.raises(ConfigureError):
            target_type("priv/lib.dylib")


class TestObjectPath:
    def test_c_source(self):
        assert object_path("c_src/foo.c") == "c_src/foo.o"

    def test_cpp_source(self):
        assert object_path("c_src/foo.cpp") == "c_src/foo.o"


class TestPortSpec:
    def test_create_derives_objects_and_type(self):
        spec = PortSpec.create("priv/foo.so", ["c_src/a.c", "c_src/b.cc"], {"CC": "cc"})
        assert spec.sources == ("c_src/a.c", "c_src/b.cc")
        assert spec.objects == ("c_src/a.o", "c_src/b.o")
        assert spec.type == "drv"
        assert spec.target == "priv/foo.so"
        assert spec.environment == {"CC": "cc"}

    def test_explicit_type(self):
        spec = PortSpec.create("priv/foo.so", ["a.c"], {}, type="exe")
        assert spec.type == "exe"

    def test_immutable(self):
        spec = PortSpec.create("prog", ["a.c"], {})
        with pytest.raises(AttributeError):
            spec.target = "other"  # type: ignore[misc]
