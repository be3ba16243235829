import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from schemaview.catalog import CATALOG, INDUSTRIES, LEAD, OPPORTUNITY, describe, entity_names, get_entity
from schemaview.errors import SchemaError
from schemaview.form import Form
from schemaview.schema import SemanticType
from schemaview.validation import validate_values


class TestCatalog(unittest.TestCase):
    def test_lookup_by_name_or_collection(self) -> None:
        self.assertIs(get_entity("lead"), LEAD)
        self.assertIs(get_entity("opportunities"), OPPORTUNITY)
        with self.assertRaises(SchemaError):
            get_entity("invoice")
        self.assertEqual(entity_names(), ["account", "contact", "lead", "opportunity"])

    def test_columns_and_sections_reference_fields(self) -> None:
        for entity in CATALOG.values():
            names = {f.name for f in entity.fields}
            self.assertTrue({c.key for c in entity.columns} <= names, entity.name)
            for section in entity.sections:
                self.assertTrue(set(section.fields) <= names, section.title)
            self.assertTrue(set(entity.search_fields) <= names, entity.name)

    def test_lead_fields(self) -> None:
        status = LEAD.field("status")
        self.assertEqual(status.type, SemanticType.SELECT)
        self.assertEqual(status.default, "New")
        self.assertEqual(LEAD.field("annualRevenue").type, SemanticType.CURRENCY)
        self.assertEqual(len(INDUSTRIES), 32)
        with self.assertRaises(SchemaError):
            LEAD.field("nope")

    def test_lead_name_length(self) -> None:
        errors = validate_values(LEAD.fields, {"firstName": "A", "lastName": "Smith", "company": "Acme", "status": "New", "leadSource": "Website"})
        self.assertEqual(errors, {"firstName": "Must be at least 2 characters"})

    def test_loss_reason_only_when_closed_lost(self) -> None:
        values = {"name": "Deal", "stage": "Negotiation/Review", "closeDate": "2024-06-30"}
        self.assertEqual(validate_values(OPPORTUNITY.fields, values), {})
        values["stage"] = "Closed Lost"
        self.assertEqual(set(validate_values(OPPORTUNITY.fields, values)), {"lossReason"})

    def test_opportunity_form_defaults(self) -> None:
        form = Form(OPPORTUNITY.fields)
        self.assertEqual(form.values["stage"], "Prospecting")
        self.assertEqual(form.values["probability"], 10)
        self.assertNotIn("lossReason", [c["name"] for c in form.view_model()["controls"]])

    def test_describe(self) -> None:
        summary = describe(get_entity("account"))
        self.assertEqual(summary["title"], "Accounts")
        self.assertEqual(summary["columns"][0], "name")
        self.assertIn({"name": "name", "type": "text", "label": "Account Name", "required": True}, summary["fields"])


if __name__ == "__main__":
    unittest.main()
