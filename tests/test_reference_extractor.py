"""
Tests for tools/reference_extractor.py — [[wikilink]] extraction from raw notes.
"""

from models.links import Reference
from tools.reference_extractor import extract_references


class TestExtractReferences:

    def test_aliased_and_bare_links(self):
        refs = extract_references("See [[Aldric Keep|the keep]] and [[Thornwood]].")
        assert refs == [
            Reference(target="Aldric Keep", alias="the keep"),
            Reference(target="Thornwood", alias="Thornwood"),
        ]

    def test_empty_input(self):
        assert extract_references("") == []
        assert extract_references("No links here.") == []

    def test_embeds_count_as_references(self):
        refs = extract_references("![[Durnan]]")
        assert refs == [Reference(target="Durnan", alias="Durnan")]

    def test_whitespace_is_trimmed(self):
        refs = extract_references("[[ Durnan | the barkeep ]]")
        assert refs == [Reference(target="Durnan", alias="the barkeep")]

    def test_blank_target_is_skipped(self):
        assert extract_references("[[   |nobody]] and [[ ]]") == []

    def test_empty_alias_falls_back_to_target(self):
        assert extract_references("[[Mirt|]]") == [Reference(target="Mirt", alias="Mirt")]

    def test_duplicates_are_kept_in_order(self):
        refs = extract_references("[[B]] then [[A]] then [[B|again]]")
        assert [r.target for r in refs] == ["B", "A", "B"]
        assert refs[2].alias == "again"

    def test_references_across_lines(self):
        text = "# Allies\n- [[Mirt]]\n- [[Laeral Silverhand|Laeral]]\n"
        assert [r.alias for r in extract_references(text)] == ["Mirt", "Laeral"]
