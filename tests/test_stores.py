import tempfile
import unittest
from pathlib import Path

from sqlalchemy import func, select

from quickforms.errors import NotFound, NotOwner, Unauthorized, ValidationError
from quickforms.models import AnswerModel
from quickforms.repo_json import JSONStorage
from quickforms.repo_sqlite import SQLiteStorage
from quickforms.stores import FieldStore, FormStore, ResponseStore, UserStore


class StoreTestsMixin:
    def make_storage(self, directory: Path):
        raise NotImplementedError

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.storage = self.make_storage(Path(tmp.name))
        self.addCleanup(self.storage.close)
        self.users = UserStore(self.storage)
        self.forms = FormStore(self.storage)
        self.fields = FieldStore(self.storage)
        self.responses = ResponseStore(self.storage)
        self.owner = self.users.register("Owner", "owner@example.com", "secret1")
        self.other = self.users.register("Other", "other@example.com", "secret2")

    def make_survey(self):
        form = self.forms.create("Survey", "Quick poll", self.owner["id"])
        color = self.fields.add(form["id"], self.owner["id"], "radio", "Color", True, ["Red", "Blue"])
        return form, color

    def test_register_and_authenticate(self):
        user = self.users.authenticate("OWNER@example.com ", "secret1")
        self.assertEqual(user["id"], self.owner["id"])
        with self.assertRaises(Unauthorized):
            self.users.authenticate("owner@example.com", "wrong-password")
        with self.assertRaises(ValidationError):
            self.users.register("Again", "Owner@Example.com", "secret3")

    def test_register_rejects_short_password(self):
        with self.assertRaises(ValidationError):
            self.users.register("Short", "short@example.com", "123")
        self.assertIsNone(self.storage.users.get_user_by_email("short@example.com"))

    def test_blank_title_persists_nothing(self):
        with self.assertRaises(ValidationError):
            self.forms.create("   ", "desc", self.owner["id"])
        self.assertEqual(self.forms.list_forms(self.owner["id"]), [])

    def test_create_trims_title_and_lists_only_own_forms(self):
        form = self.forms.create("  Feedback  ", "", self.owner["id"])
        self.assertEqual(form["title"], "Feedback")
        self.assertIsNone(form["description"])
        self.assertEqual(form["fields"], [])
        self.assertEqual([f["id"] for f in self.forms.list_forms(self.owner["id"])], [form["id"]])
        self.assertEqual(self.forms.list_forms(self.other["id"]), [])

    def test_update_form(self):
        form, _ = self.make_survey()
        updated = self.forms.update(form["id"], self.owner["id"], "Survey 2", "  ")
        self.assertEqual(updated["title"], "Survey 2")
        self.assertIsNone(updated["description"])
        self.assertEqual(len(updated["fields"]), 1)
        with self.assertRaises(ValidationError):
            self.forms.update(form["id"], self.owner["id"], "", None)

    def test_non_owner_is_rejected(self):
        form, color = self.make_survey()
        with self.assertRaises(NotOwner):
            self.forms.update(form["id"], self.other["id"], "Mine now", None)
        with self.assertRaises(NotOwner):
            self.forms.delete(form["id"], self.other["id"])
        with self.assertRaises(NotOwner):
            self.responses.list_for_owner(form["id"], self.other["id"])
        with self.assertRaises(NotOwner):
            self.fields.add(form["id"], self.other["id"], "text", "Name", False, [])
        with self.assertRaises(NotOwner):
            self.fields.update(color["id"], self.other["id"], "X", False, [])
        with self.assertRaises(NotOwner):
            self.fields.delete(color["id"], self.other["id"])
        self.assertIsNotNone(self.storage.forms.get_form(form["id"]))
        self.assertEqual(self.storage.fields.get_field(color["id"])["label"], "Color")

    def test_missing_form_and_field(self):
        with self.assertRaises(NotFound):
            self.forms.get_with_fields("missing", self.owner["id"])
        with self.assertRaises(NotFound):
            self.fields.update("missing", self.owner["id"], "Label", False, [])

    def test_field_validation(self):
        form = self.forms.create("Survey", None, self.owner["id"])
        with self.assertRaises(ValidationError):
            self.fields.add(form["id"], self.owner["id"], "radio", "Color", False, [" ", ""])
        with self.assertRaises(ValidationError):
            self.fields.add(form["id"], self.owner["id"], "slider", "Volume", False, [])
        with self.assertRaises(ValidationError):
            self.fields.add(form["id"], self.owner["id"], "text", "   ", False, [])
        text = self.fields.add(form["id"], self.owner["id"], "text", " Name ", True, ["ignored"])
        self.assertEqual(text["label"], "Name")
        self.assertEqual(text["options"], [])
        self.assertTrue(text["required"])

    def test_fields_keep_insertion_order(self):
        form = self.forms.create("Survey", None, self.owner["id"])
        labels = ["First", "Second", "Third"]
        for label in labels:
            self.fields.add(form["id"], self.owner["id"], "text", label, False, [])
        loaded = self.forms.get_public(form["id"])
        self.assertEqual([field["label"] for field in loaded["fields"]], labels)

    def test_update_field_deduplicates_options(self):
        _, color = self.make_survey()
        updated = self.fields.update(color["id"], self.owner["id"], "Colour", False, ["Red", "Red ", "Green"])
        self.assertEqual(updated["label"], "Colour")
        self.assertFalse(updated["required"])
        self.assertEqual(updated["options"], ["Red", "Green"])
        self.assertEqual(updated["type"], "radio")

    def test_submit_to_missing_form_writes_nothing(self):
        with self.assertRaises(NotFound):
            self.responses.submit("missing", [{"field_id": "x", "value": "y"}])
        self.assertEqual(self.storage.responses.list_responses("missing"), [])

    def test_submit_creates_one_response_with_all_answers(self):
        form, color = self.make_survey()
        name = self.fields.add(form["id"], self.owner["id"], "text", "Name", False, [])
        created = self.responses.submit(
            form["id"],
            [
                {"field_id": color["id"], "value": "Blue"},
                {"field_id": name["id"], "value": "Ada"},
                {"field_id": "unknown-field", "value": "kept"},
            ],
        )
        _, responses = self.responses.list_for_owner(form["id"], self.owner["id"])
        self.assertEqual(len(responses), 1)
        self.assertEqual(responses[0]["id"], created["id"])
        answers = responses[0]["answers"]
        self.assertEqual(len(answers), 3)
        self.assertTrue(all(answer["response_id"] == created["id"] for answer in answers))
        self.assertEqual({a["field_id"]: a["value"] for a in answers}[name["id"]], "Ada")

    def test_survey_round_trip(self):
        form, color = self.make_survey()
        self.responses.submit(form["id"], [{"field_id": color["id"], "value": "Red"}])
        loaded, responses = self.responses.list_for_owner(form["id"], self.owner["id"])
        self.assertEqual(loaded["title"], "Survey")
        self.assertEqual(len(responses), 1)
        self.assertEqual(
            [(a["field_id"], a["value"]) for a in responses[0]["answers"]],
            [(color["id"], "Red")],
        )

    def test_delete_field_removes_its_answers(self):
        form, color = self.make_survey()
        name = self.fields.add(form["id"], self.owner["id"], "text", "Name", False, [])
        self.responses.submit(
            form["id"],
            [{"field_id": color["id"], "value": "Red"}, {"field_id": name["id"], "value": "Ada"}],
        )
        deleted = self.fields.delete(name["id"], self.owner["id"])
        self.assertEqual(deleted["form_id"], form["id"])
        self.assertIsNone(self.storage.fields.get_field(name["id"]))
        responses = self.storage.responses.list_responses(form["id"])
        self.assertEqual([a["field_id"] for a in responses[0]["answers"]], [color["id"]])

    def test_delete_field_only_touches_responses_that_answered_it(self):
        form, color = self.make_survey()
        name = self.fields.add(form["id"], self.owner["id"], "text", "Name", False, [])
        both = self.responses.submit(
            form["id"],
            [{"field_id": color["id"], "value": "Red"}, {"field_id": name["id"], "value": "Ada"}],
        )
        also = self.responses.submit(
            form["id"],
            [{"field_id": color["id"], "value": "Blue"}, {"field_id": name["id"], "value": "Grace"}],
        )
        color_only = self.responses.submit(form["id"], [{"field_id": color["id"], "value": "Blue"}])
        self.fields.delete(name["id"], self.owner["id"])
        answers = {
            response["id"]: [(a["field_id"], a["value"]) for a in response["answers"]]
            for response in self.storage.responses.list_responses(form["id"])
        }
        self.assertEqual(answers[both["id"]], [(color["id"], "Red")])
        self.assertEqual(answers[also["id"]], [(color["id"], "Blue")])
        self.assertEqual(answers[color_only["id"]], [(color["id"], "Blue")])

    def test_delete_form_cascades(self):
        form, color = self.make_survey()
        self.responses.submit(form["id"], [{"field_id": color["id"], "value": "Red"}])
        self.responses.submit(form["id"], [{"field_id": color["id"], "value": "Blue"}])
        self.forms.delete(form["id"], self.owner["id"])
        self.assertIsNone(self.storage.forms.get_form(form["id"]))
        self.assertIsNone(self.storage.fields.get_field(color["id"]))
        self.assertEqual(self.storage.responses.list_responses(form["id"]), [])
        with self.assertRaises(NotFound):
            self.forms.get_public(form["id"])


class SQLiteStoreTests(StoreTestsMixin, unittest.TestCase):
    def make_storage(self, directory: Path):
        return SQLiteStorage(f"sqlite:///{directory / 'app.db'}")

    def count_answers(self) -> int:
        with self.storage._Session() as session:
            return session.scalar(select(func.count()).select_from(AnswerModel))

    def test_delete_form_leaves_no_orphan_answers(self):
        form, color = self.make_survey()
        self.responses.submit(form["id"], [{"field_id": color["id"], "value": "Red"}])
        self.assertEqual(self.count_answers(), 1)
        self.forms.delete(form["id"], self.owner["id"])
        self.assertEqual(self.count_answers(), 0)


class JSONStoreTests(StoreTestsMixin, unittest.TestCase):
    def make_storage(self, directory: Path):
        return JSONStorage(directory / "jsonstore.json")


if __name__ == "__main__":
    unittest.main()
