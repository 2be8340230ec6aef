import unittest

from starlette.datastructures import FormData

from quickforms.renderer import (
    REQUIRED_MESSAGE,
    answer_values,
    collect_answers,
    display_value,
    parse_choices,
    response_rows,
    serialize_choices,
    validate_answer,
    validate_answers,
    widget_for,
)


def make_field(field_id, field_type, required=False, options=None, label=None):
    return {
        "id": field_id,
        "type": field_type,
        "label": label or field_id.title(),
        "required": required,
        "options": options or [],
    }


class ChoiceEncodingTests(unittest.TestCase):
    def test_choices_round_trip_ignoring_order(self):
        encoded = serialize_choices(["Blue", "Red"])
        self.assertEqual(sorted(parse_choices(encoded)), ["Blue", "Red"])

    def test_parse_tolerates_plain_text(self):
        self.assertEqual(parse_choices("Red"), ["Red"])
        self.assertEqual(parse_choices('{"a": 1}'), ['{"a": 1}'])
        self.assertEqual(parse_choices(""), [])
        self.assertEqual(parse_choices(None), [])


class WidgetTests(unittest.TestCase):
    def test_widget_per_type(self):
        self.assertEqual(widget_for(make_field("bio", "textarea"))["input_type"], "textarea")
        self.assertEqual(widget_for(make_field("bio", "textarea"))["rows"], 4)
        self.assertEqual(widget_for(make_field("age", "number"))["input_type"], "number")
        self.assertEqual(widget_for(make_field("day", "date"))["input_type"], "date")
        checkbox = widget_for(make_field("tags", "checkbox", True, ["a", "b"]))
        self.assertTrue(checkbox["multiple"])
        self.assertTrue(checkbox["required"])
        self.assertEqual(checkbox["options"], ["a", "b"])
        self.assertEqual(checkbox["name"], "tags")
        self.assertFalse(widget_for(make_field("color", "radio", options=["x"]))["multiple"])

    def test_unknown_type_falls_back_to_text(self):
        self.assertEqual(widget_for(make_field("odd", "slider"))["input_type"], "text")


class CollectTests(unittest.TestCase):
    def test_collects_every_field_once(self):
        fields = [
            make_field("name", "text"),
            make_field("tags", "checkbox", options=["a", "b", "c"]),
            make_field("color", "radio", options=["Red"]),
        ]
        form_data = FormData([("name", "Ada"), ("tags", "a"), ("tags", "c"), ("extra", "x")])
        answers = collect_answers(fields, form_data)
        self.assertEqual([a["field_id"] for a in answers], ["name", "tags", "color"])
        by_field = {a["field_id"]: a["value"] for a in answers}
        self.assertEqual(by_field["name"], "Ada")
        self.assertEqual(sorted(parse_choices(by_field["tags"])), ["a", "c"])
        self.assertEqual(by_field["color"], "")

        values = answer_values(answers, fields)
        self.assertEqual(sorted(values["tags"]), ["a", "c"])
        self.assertEqual(values["name"], "Ada")


class ValidationTests(unittest.TestCase):
    def test_required_fields(self):
        self.assertEqual(validate_answer(make_field("name", "text", True), "   "), REQUIRED_MESSAGE)
        self.assertEqual(
            validate_answer(make_field("tags", "checkbox", True, ["a"]), serialize_choices([])),
            REQUIRED_MESSAGE,
        )
        self.assertIsNone(validate_answer(make_field("name", "text"), ""))

    def test_typed_values(self):
        number = make_field("age", "number")
        self.assertIsNone(validate_answer(number, "42.5"))
        self.assertIsNotNone(validate_answer(number, "forty"))
        self.assertIsNotNone(validate_answer(number, "1e400"))
        day = make_field("day", "date")
        self.assertIsNone(validate_answer(day, "2024-02-29"))
        self.assertIsNotNone(validate_answer(day, "2023-02-29"))
        self.assertIsNotNone(validate_answer(day, "29/02/2024"))
        self.assertIsNotNone(validate_answer(day, "2024-W01-1"))
        self.assertIsNotNone(validate_answer(make_field("due", "date", True), "2024-W01-1"))

    def test_choices_must_be_listed(self):
        radio = make_field("color", "radio", options=["Red", "Blue"])
        self.assertIsNone(validate_answer(radio, "Red"))
        self.assertIsNotNone(validate_answer(radio, "Green"))
        checkbox = make_field("tags", "checkbox", options=["a", "b"])
        self.assertIsNone(validate_answer(checkbox, serialize_choices(["b", "a"])))
        self.assertIsNotNone(validate_answer(checkbox, serialize_choices(["a", "z"])))

    def test_validate_answers_keys_errors_by_field(self):
        fields = [make_field("name", "text", True), make_field("age", "number")]
        errors = validate_answers(fields, [{"field_id": "age", "value": "x"}])
        self.assertEqual(set(errors), {"name", "age"})


class DisplayTests(unittest.TestCase):
    def test_display_values(self):
        tags = make_field("tags", "checkbox", options=["a", "b"])
        self.assertEqual(display_value(tags, None), "N/A")
        self.assertEqual(display_value(tags, {"value": serialize_choices(["a", "b"])}), "a, b")
        self.assertEqual(display_value(make_field("name", "text"), {"value": ""}), "No answer")

    def test_response_rows_follow_field_order(self):
        fields = [make_field("name", "text", label="Name"), make_field("color", "radio", label="Color")]
        response = {"answers": [{"field_id": "color", "value": "Red"}]}
        self.assertEqual(
            response_rows(fields, response),
            [{"label": "Name", "value": "N/A"}, {"label": "Color", "value": "Red"}],
        )


if __name__ == "__main__":
    unittest.main()
