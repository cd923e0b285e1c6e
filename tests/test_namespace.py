"""Tests for page9.routing.namespace: longest-prefix mount resolution."""

from page9.config import Mount
from page9.routing.namespace import Namespace


class TestNamespace:
    def test_translates_prefix(self) -> None:
        ns = Namespace([Mount("/docs", "/content/docs")])
        match = ns.resolve("/docs/intro.md")
        assert match is not None
        assert match.translated_path == "/content/docs/intro.md"

    def test_longest_prefix_wins(self) -> None:
        ns = Namespace(
            [
                Mount("/a", "/short"),
                Mount("/a/b/c", "/longest"),
                Mount("/a/b", "/middle"),
            ]
        )
        match = ns.resolve("/a/b/c/d.txt")
        assert match is not None
        assert match.mount.target == "/longest"
        assert match.translated_path == "/longest/d.txt"

    def test_equal_length_first_declared_wins(self) -> None:
        ns = Namespace([Mount("/resources", "/local"), Mount("/resources", "/cache")])
        for _ in range(3):
            match = ns.resolve("/resources/x.json")
            assert match is not None
            assert match.translated_path == "/local/x.json"

    def test_no_mount(self) -> None:
        ns = Namespace([Mount("/docs", "/content")])
        assert ns.resolve("/images/a.png") is None
        assert Namespace([]).resolve("/anything") is None

    def test_plain_string_prefix(self) -> None:
        # Prefixes are string prefixes, not path segments
        ns = Namespace([Mount("/doc", "/d")])
        match = ns.resolve("/docs/a")
        assert match is not None
        assert match.translated_path == "/ds/a"

    def test_empty_mount_path_never_matches(self) -> None:
        ns = Namespace([Mount("", "/everything")])
        assert ns.find("/a") is None

    def test_file_mount(self) -> None:
        ns = Namespace([Mount("/logo.png", "/img/brand.png", "file")])
        match = ns.resolve("/logo.png")
        assert match is not None
        assert match.translated_path == "/img/brand.png"
