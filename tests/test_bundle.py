"""
Tests for bundle analysis: package attribution and the import-graph walk.
"""

import pytest

from remotesplit.analysis import (
    BundleAnalyzer,
    analyze_bundle,
    analyze_metafile,
    attribute_inputs,
    extract_package_name,
)
from remotesplit.core.exceptions import AnalysisError


class TestExtractPackageName:

    @pytest.mark.parametrize("path, expected", [
        ("/venv/lib/python3.12/site-packages/numpy/core/multiarray.py", "numpy"),
        ("/usr/lib/python3/dist-packages/yaml/__init__.py", "yaml"),
        ("/venv/lib/site-packages/six.py", "six"),
        ("/venv/lib/site-packages/_cffi_backend.cpython-312-x86_64-linux-gnu.so", "_cffi_backend"),
        ("node_modules/@faker-js/faker/dist/index.js", "@faker-js/faker"),
        ("node_modules/sql-formatter/lib/index.js", "sql-formatter"),
        ("node_modules/a/node_modules/b/index.js", "a"),
        ("C:\\venv\\Lib\\site-packages\\requests\\api.py", "requests"),
    ])
    def test_package_files(self, path, expected):
        assert extract_package_name(path) == expected

    @pytest.mark.parametrize("path", [
        "src/app/main.py",
        "/venv/lib/site-packages/numpy-1.26.0.dist-info/RECORD",
        "/venv/lib/site-packages/setuptools-69.0.egg-info/PKG-INFO",
        "/venv/lib/site-packages/__pycache__/six.cpython-312.pyc",
        "node_modules/@scope",
        "/home/me/my-site-packages/tool/x.py",
    ])
    def test_non_package_files(self, path):
        assert extract_package_name(path) is None

    def test_custom_roots(self):
        assert extract_package_name("vendor/lib/x.py", roots=("vendor",)) == "lib"
        assert extract_package_name("vendor/lib/x.py") is None


class TestAttribution:

    def test_groups_and_sorts_by_bytes(self):
        inputs = {
            "site-packages/small/__init__.py": 100,
            "site-packages/big/__init__.py": 300,
            "site-packages/big/core.py": 600,
            "app/main.py": 1000,
        }
        analysis = attribute_inputs(inputs, 2000)

        assert analysis.names == ["big", "small"]
        assert analysis.get("big").bytes == 900
        assert analysis.get("big").percentage == 45
        assert analysis.get("small").percentage == 5
        assert len(analysis.get("big").files) == 2
        assert analysis.total_bytes == 2000
        assert analysis.application_files == ("app/main.py",)

    def test_percentage_rounds_half_up(self):
        analysis = attribute_inputs({"site-packages/p/a.py": 1}, 200)
        assert analysis.get("p").percentage == 1

    def test_zero_total(self):
        analysis = attribute_inputs({"site-packages/p/a.py": 0}, 0)
        assert analysis.get("p").percentage == 0

    def test_get_unknown_package(self):
        with pytest.raises(KeyError):
            attribute_inputs({}, 0).get("missing")


class TestMetafile:

    def test_first_output_is_attributed(self):
        metafile = {
            "outputs": {
                "dist/index.js": {
                    "bytes": 5000,
                    "inputs": {
                        "node_modules/@faker-js/faker/dist/a.js": {"bytesInOutput": 3000},
                        "node_modules/sql-formatter/lib/b.js": {"bytesInOutput": 1500},
                        "src/index.ts": {"bytesInOutput": 500},
                    },
                },
            },
        }
        analysis = analyze_metafile(metafile)

        assert analysis.total_bytes == 5000
        assert analysis.names == ["@faker-js/faker", "sql-formatter"]
        assert analysis.get("@faker-js/faker").percentage == 60

    @pytest.mark.parametrize("metafile", [{}, {"outputs": {}}, {"outputs": {"x": {"bytes": 1}}}])
    def test_malformed_metafile(self, metafile):
        with pytest.raises(AnalysisError):
            analyze_metafile(metafile)


class TestBundleAnalyzer:

    def analyze(self, app_tree):
        analyzer = BundleAnalyzer(search_paths=[app_tree.site_packages])
        return analyzer, analyzer.analyze(app_tree.entry)

    def test_reached_packages_are_attributed(self, app_tree):
        _, analysis = self.analyze(app_tree)
        assert analysis.names == ["heavypkg", "lightmod"]

    def test_unimported_packages_are_ignored(self, app_tree):
        _, analysis = self.analyze(app_tree)
        assert "unusedpkg" not in analysis.names

    def test_package_bytes_cover_every_reached_file(self, app_tree):
        _, analysis = self.analyze(app_tree)
        heavy = app_tree.site_packages / "heavypkg"
        expected = sum(
            (heavy / name).stat().st_size
            for name in ("__init__.py", "core.py", "extras/__init__.py")
        )
        assert analysis.get("heavypkg").bytes == expected

    def test_total_includes_application_code(self, app_tree):
        analyzer, analysis = self.analyze(app_tree)
        assert str(app_tree.entry.resolve()) in analyzer.inputs
        assert str((app_tree.app / "helpers.py").resolve()) in analyzer.inputs
        assert analysis.total_bytes == sum(analyzer.inputs.values())
        assert analysis.total_bytes > sum(p.bytes for p in analysis.packages)

    def test_application_files_stay_with_the_main_unit(self, app_tree):
        _, analysis = self.analyze(app_tree)
        assert analysis.application_files == (
            str((app_tree.app / "helpers.py").resolve()),
            str(app_tree.entry.resolve()),
        )

    def test_submodule_imported_by_name(self, app_tree):
        (app_tree.entry).write_text("from heavypkg.extras import plots\n")
        analyzer, analysis = self.analyze(app_tree)
        plots = app_tree.site_packages / "heavypkg" / "extras" / "plots.py"
        assert str(plots.resolve()) in analyzer.inputs

    def test_standard_library_is_not_followed(self, app_tree):
        analyzer, _ = self.analyze(app_tree)
        assert not any("json" in path for path in analyzer.inputs)

    def test_unparsable_dependency_is_still_counted(self, app_tree):
        (app_tree.site_packages / "lightmod.py").write_text("def broken(:\n")
        _, analysis = self.analyze(app_tree)
        assert "lightmod" in analysis.names

    def test_missing_entry(self, tmp_path):
        with pytest.raises(AnalysisError, match="Cannot resolve entry point"):
            analyze_bundle(tmp_path / "missing.py")

    def test_unparsable_entry(self, tmp_path):
        entry = tmp_path / "main.py"
        entry.write_text("def broken(:\n")
        with pytest.raises(AnalysisError, match="Cannot parse entry point"):
            analyze_bundle(entry)
