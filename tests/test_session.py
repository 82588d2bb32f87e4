from conftest import generated
from models import TestCaseOrigin, UploadStatus, UserStory
from session import Session


def _story(story_id=42):
    return UserStory(id=story_id, title="Checkout", acceptance_criteria="• Pay", url="https://web/42")


class TestManualCases:

    def test_ids_count_up_and_are_never_reused(self):
        session = Session()
        first = session.add_manual()
        session.remove(first.id)
        second = session.add_manual("Refund by phone")

        assert first.id == "MANUAL-1"
        assert first.title == "Manual Test Case 1"
        assert second.id == "MANUAL-2"
        assert second.title == "Refund by phone"
        assert second.origin is TestCaseOrigin.MANUAL
        assert second.priority == "Medium"

    def test_get_and_remove(self):
        session = Session(test_cases=[generated("TC-POS-1")])
        assert session.get("TC-POS-1") is session.test_cases[0]
        assert session.get("nope") is None
        assert session.remove("TC-POS-1") is True
        assert session.remove("TC-POS-1") is False


class TestStorySwitching:

    def test_same_story_keeps_working_set(self):
        session = Session()
        session.start_story(_story())
        session.add_manual()
        session.start_story(_story())

        assert len(session.test_cases) == 1
        assert session.manual_counter == 2

    def test_new_story_resets_working_set(self):
        session = Session()
        session.start_story(_story())
        session.add_manual()
        session.start_story(_story(99))

        assert session.test_cases == []
        assert session.manual_counter == 1
        assert session.story.id == 99


class TestPersistence:

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "session.json"
        session = Session()
        session.start_story(_story())
        session.add_manual()
        session.test_cases.append(
            generated("TC-POS-1", upload_status=UploadStatus.SUCCESS, azure_devops_id=555)
        )
        session.save(path)

        loaded = Session.load(path)

        assert loaded.story == session.story
        assert loaded.manual_counter == 2
        assert loaded.test_cases == session.test_cases
        assert loaded.test_cases[1].upload_status is UploadStatus.SUCCESS

    def test_missing_file_gives_empty_session(self, tmp_path):
        session = Session.load(tmp_path / "absent.json")
        assert session.story is None
        assert session.test_cases == []
