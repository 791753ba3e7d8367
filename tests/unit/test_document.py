"""Tests for selection document loading."""

import pytest
import yaml

from selection_sparql.document import load_document, parse_document


class TestParseDocument:
    """Test building documents from mappings."""

    def test_sections(self, document_data):
        """Paths, selection and camelCase options are resolved."""
        document = parse_document(document_data)
        assert len(document.paths) == 9
        assert document.selection.central_id == 'person'
        assert document.selection.count_ids == ['membership']
        assert document.options.include_zero_count_results is True
        assert document.options.limit == 25

    def test_explicit_ids(self, document_data):
        """Explicit ids are kept in order."""
        assert parse_document(document_data).explicit_ids == ['name', 'group_name']

    def test_explicit_defaults_to_all_nodes(self, document_data):
        """Without an explicit list every node is explicit."""
        del document_data['selection']['explicit']
        assert parse_document(document_data).explicit_ids == ['person', 'name', 'membership', 'group_name']

    def test_namespaces_section(self, document_data):
        """A top-level namespaces section replaces the table."""
        document_data['namespaces'] = [{'prefix': 'ex', 'iri': 'http://example.org/'}]
        document = parse_document(document_data)
        assert document.options.namespaces.to_pairs() == [{'prefix': 'ex', 'iri': 'http://example.org/'}]

    def test_non_mapping_rejected(self):
        """Documents must be mappings."""
        with pytest.raises(ValueError, match="mapping"):
            parse_document(['not', 'a', 'document'])

    def test_bad_options_rejected(self, document_data):
        """Options must be a mapping."""
        document_data['options'] = ['limit']
        with pytest.raises(ValueError, match="Options"):
            parse_document(document_data)


class TestLoadDocument:
    """Test reading documents from disk."""

    def test_load_yaml(self, tmp_test_dir, document_data):
        """A YAML file loads into the same document."""
        path = tmp_test_dir / "selection.yaml"
        path.write_text(yaml.safe_dump(document_data))
        document = load_document(path)
        assert document.selection.node_ids == ['person', 'name', 'membership', 'group_name']
        assert document.options.limit == 25

    def test_missing_file(self, tmp_test_dir):
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_document(tmp_test_dir / "missing.yaml")

    def test_invalid_yaml(self, tmp_test_dir):
        """Unparsable YAML raises ValueError chained from the parser error."""
        path = tmp_test_dir / "broken.yaml"
        path.write_text("selection: [unclosed\n")
        with pytest.raises(ValueError) as excinfo:
            load_document(path)
        assert isinstance(excinfo.value.__cause__, yaml.YAMLError)
