"""
Tests for rule synthesis.
"""
import pytest

from auto_organizer.models import SuggestedRule
from auto_organizer.rules import RuleSynthesizer

from conftest import BASE_FOLDER, FakeApi, make_result


@pytest.mark.asyncio
async def test_suggest_sends_folders_and_selects_rules():
    """Test the request payload and initial selection."""
    api = FakeApi()
    api.rules = [SuggestedRule(rule_type="keyword", pattern="invoice", target_folder="Docs",
                               file_count=2, confidence=0.7, selected=False)]
    result = make_result({"Docs": ["a.pdf", "c.txt"]})

    rules = await RuleSynthesizer(api).suggest("token", result, BASE_FOLDER)

    assert rules[0].selected is True
    payload = api.payloads[0]
    assert payload["source_folder"] == BASE_FOLDER
    assert payload["folders"][0]["files"] == ["a.pdf", "c.txt"]
    assert set(payload["folders"][0]) == {
        "folder_path", "folder_name", "files", "reason", "confidence", "file_count",
    }


@pytest.mark.asyncio
async def test_suggest_nothing_found():
    """Test an empty rule set."""
    rules = await RuleSynthesizer(FakeApi()).suggest("token", make_result({}), BASE_FOLDER)

    assert rules == []
