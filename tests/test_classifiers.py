from pathlib import Path
import unittest

import pytest

from clinic_ledger.classifiers import (
    EXCLUDED,
    CategoryClassifier,
    Rulebook,
    RulebookError,
    classify,
)
from clinic_ledger.models import ExpenseItem, Invoice, InvoiceLineItem

RULES_FILE = Path(__file__).resolve().parents[1] / "backend" / "config" / "classification_rules.yaml"


def fund_line(label, service_category=None):
    return InvoiceLineItem(label=label, payable_amount=100, is_clinic_fund=True, service_category=service_category)


class DiagnosticClassificationTestCase(unittest.TestCase):
    def setUp(self):
        self.classifier = CategoryClassifier()

    def test_test_names_map_to_modalities(self):
        self.assertEqual(self.classifier.classify_test("USG of Whole Abdomen"), "usg")
        self.assertEqual(self.classifier.classify_test("Ultrasonogram KUB"), "usg")
        self.assertEqual(self.classifier.classify_test("Chest X-Ray PA view"), "xray")
        self.assertEqual(self.classifier.classify_test("ECG"), "ecg")
        self.assertEqual(self.classifier.classify_test("Serum TSH"), "hormone")

    def test_unknown_or_missing_test_name_is_pathology(self):
        self.assertEqual(self.classifier.classify_test("CBC"), "pathology")
        self.assertEqual(self.classifier.classify_test(None), "pathology")

    def test_diagnostic_tags_start_with_catch_all(self):
        self.assertEqual(self.classifier.diagnostic_tags(), ("pathology", "usg", "xray", "ecg", "hormone"))

    def test_lab_due_prefix(self):
        self.assertTrue(self.classifier.is_lab_due("INV-0001"))
        self.assertFalse(self.classifier.is_lab_due("IND-0001"))
        self.assertFalse(self.classifier.is_lab_due(None))


class ServiceLineClassificationTestCase(unittest.TestCase):
    def setUp(self):
        self.classifier = CategoryClassifier()

    def test_lines_outside_clinic_fund_are_excluded(self):
        line = InvoiceLineItem(label="Admission Fee", payable_amount=500, is_clinic_fund=False)
        self.assertEqual(self.classifier.classify_service_line(line), EXCLUDED)

    def test_fund_keywords_win_over_category(self):
        self.assertEqual(self.classifier.classify_service_line(fund_line("Admission Fee"), "Operation"), "admission")
        self.assertEqual(self.classifier.classify_service_line(fund_line("Nebulization")), "oxygen")
        self.assertEqual(self.classifier.classify_service_line(fund_line("O2 per hour")), "oxygen")
        self.assertEqual(self.classifier.classify_service_line(fund_line("Dressing")), "dressing")

    def test_conservative_category(self):
        line = fund_line("Bed charge")
        self.assertEqual(self.classifier.classify_service_line(line, "Conservative treatment"), "conservative")

    def test_ot_procedure_comes_from_sub_category(self):
        line = fund_line("OT Charge")
        self.assertEqual(self.classifier.classify_service_line(line, "Operation", "LSCS"), "lscs")
        self.assertEqual(self.classifier.classify_service_line(line, "Operation", "Gallbladder"), "gb_ot")
        self.assertEqual(self.classifier.classify_service_line(line, "NVD and D&C", "NVD"), "nvd")
        self.assertEqual(self.classifier.classify_service_line(line, "NVD and D&C", "D&C"), "dc")

    def test_unnamed_procedure_is_other_ot(self):
        line = fund_line("OT Charge")
        self.assertEqual(self.classifier.classify_service_line(line, "Operation"), "others_ot")

    def test_doctor_services_are_not_ot_revenue(self):
        line = fund_line("Anaesthetist Fee")
        self.assertEqual(self.classifier.classify_service_line(line, "Operation"), "others")

    def test_line_category_overrides_invoice_category(self):
        line = fund_line("Bed charge", service_category="Conservative treatment")
        self.assertEqual(self.classifier.classify_service_line(line, "Operation"), "conservative")

    def test_everything_else_is_others(self):
        self.assertEqual(self.classifier.classify_service_line(fund_line("Bed charge")), "others")


class ExpenseClassificationTestCase(unittest.TestCase):
    def setUp(self):
        self.classifier = CategoryClassifier()

    def test_synonyms_and_canonical_labels(self):
        self.assertEqual(self.classifier.classify_expense("Electricity bill"), "Bills")
        self.assertEqual(self.classifier.classify_expense("  electricity   BILL "), "Bills")
        self.assertEqual(self.classifier.classify_expense("Food/Refreshment"), "Food")
        self.assertEqual(self.classifier.classify_expense("house rent"), "House rent")

    def test_unknown_label_falls_back_to_others(self):
        self.assertEqual(self.classifier.classify_expense("Maintenance"), "Others")
        self.assertEqual(self.classifier.classify_expense(None), "Others")

    def test_ledger_scopes(self):
        self.assertTrue(self.classifier.expense_in_scope("diagnostic", "Electricity bill"))
        self.assertFalse(self.classifier.expense_in_scope("diagnostic", "Generator"))
        self.assertTrue(self.classifier.expense_in_scope("diagnostic", "Something unheard of"))
        self.assertTrue(self.classifier.expense_in_scope("clinic", "Generator"))
        self.assertFalse(self.classifier.expense_in_scope("pharmacy", "Generator"))
        self.assertTrue(self.classifier.expense_in_scope("consolidated", "Generator"))

    def test_expense_tags_follow_scope(self):
        diagnostic = self.classifier.expense_tags("diagnostic")
        self.assertIn("Bills", diagnostic)
        self.assertIn("Clinic_Dev", diagnostic)
        self.assertNotIn("Generator", diagnostic)
        self.assertEqual(self.classifier.expense_tags("pharmacy"), ())


def test_classify_dispatches_on_item_type():
    lab = Invoice(invoice_id="INV-1", kind="lab", invoice_date="2025-01-01")
    sale = Invoice(invoice_id="S-1", kind="pharmacy_sale", invoice_date="2025-01-01")

    assert classify(ExpenseItem(category="Electricity bill")) == "Bills"
    assert classify(InvoiceLineItem(label="USG"), lab) == "usg"
    assert classify(InvoiceLineItem(label="USG")) == "usg"
    assert classify(fund_line("Dressing")) == "dressing"
    assert classify(InvoiceLineItem(label="Napa 500"), sale) == "medicine_sales"

    with pytest.raises(TypeError):
        classify("USG")


def test_unknown_invoice_kind_is_rejected():
    purchase = Invoice(invoice_id="P-1", kind="pharmacy_purchase", invoice_date="2025-01-01")
    refund = Invoice(invoice_id="X-1", kind="refund", invoice_date="2025-01-01")

    assert classify(InvoiceLineItem(label="Napa 500"), purchase) == "medicine_purchase"
    with pytest.raises(TypeError):
        classify(InvoiceLineItem(label="Napa 500"), refund)


def test_indoor_medicine_lines_never_count_as_clinic_revenue():
    classifier = CategoryClassifier()
    medicine = InvoiceLineItem(label=" medicine ", payable_amount=100, is_clinic_fund=True)

    assert classifier.is_indoor_medicine(medicine)
    assert not classifier.is_indoor_medicine(fund_line("Medicine counselling"))
    assert classifier.classify_service_line(medicine, "Conservative treatment") == EXCLUDED


def test_yaml_rulebook_sets_indoor_medicine_labels(tmp_path):
    rules = tmp_path / "rules.yaml"
    rules.write_text("pharmacy:\n  indoor_medicine_labels: [Drugs, Injection]\n", encoding="utf-8")

    classifier = CategoryClassifier(Rulebook.from_yaml(rules))

    assert classifier.is_indoor_medicine(InvoiceLineItem(label="Injection"))
    assert not classifier.is_indoor_medicine(InvoiceLineItem(label="Medicine"))


def test_shipped_rulebook_matches_builtin_defaults():
    assert Rulebook.from_yaml(RULES_FILE) == Rulebook()


def test_yaml_rulebook_replaces_tables(tmp_path):
    rules = tmp_path / "rules.yaml"
    rules.write_text(
        "version: TEST_RULES_V2\n"
        "diagnostic:\n"
        "  due_prefix: LAB\n"
        "  fallback: general\n"
        "  tests:\n"
        "    - tag: mri\n"
        "      keywords: [mri]\n"
        "expenses:\n"
        "  synonyms:\n"
        "    Power: Bills\n",
        encoding="utf-8",
    )

    classifier = CategoryClassifier(Rulebook.from_yaml(rules))

    assert classifier.rulebook.version == "TEST_RULES_V2"
    assert classifier.classify_test("Brain MRI") == "mri"
    assert classifier.classify_test("USG") == "general"
    assert classifier.is_lab_due("LAB-1")
    assert not classifier.is_lab_due("INV-1")
    assert classifier.classify_expense("power") == "Bills"
    assert classifier.classify_expense("Electricity bill") == "Others"
    assert classifier.classify_service_line(fund_line("Admission Fee")) == "admission"


@pytest.mark.parametrize(
    "document",
    [
        "- just\n- a list\n",
        "clinic: [1, 2]\n",
        "diagnostic:\n  tests:\n    - tag: usg\n",
        "expenses:\n  fallback: Misc\n",
        "expenses:\n  scopes:\n    diagnostic: House rent\n",
    ],
)
def test_malformed_rulebook_is_rejected(tmp_path, document):
    rules = tmp_path / "rules.yaml"
    rules.write_text(document, encoding="utf-8")

    with pytest.raises(RulebookError):
        Rulebook.from_yaml(rules)
