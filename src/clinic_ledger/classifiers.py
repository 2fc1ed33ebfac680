"""Category classification for invoice lines and expenses.

Every classifier here is an ordered table of (predicate, tag) rules evaluated
first-match-wins, with a catch-all tag at the end. Tables come from a
`Rulebook`, which ships sensible defaults and can be overridden from YAML.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

import yaml

from clinic_ledger.core import normalize_label
from clinic_ledger.models import ExpenseItem, Invoice, InvoiceLineItem


RULE_VERSION = "CLINIC_LEDGER_RULES_2025_01"

EXCLUDED = "excluded"
OTHERS_OT = "others_ot"
OTHERS = "others"
CONSERVATIVE = "conservative"
MEDICINE_SALES = "medicine_sales"
MEDICINE_PURCHASE = "medicine_purchase"

KeywordTable = Tuple[Tuple[str, Tuple[str, ...]], ...]

# -----------------------------
# Default tables
# -----------------------------

DIAGNOSTIC_TEST_KEYWORDS: KeywordTable = (
    ("usg", ("usg", "ultra")),
    ("xray", ("x-ray", "xray")),
    ("ecg", ("ecg",)),
    ("hormone", ("hormone", "tsh", "t3", "t4")),
)

CLINIC_FUND_KEYWORDS: KeywordTable = (
    ("admission", ("admission",)),
    ("oxygen", ("oxygen", "o2", "nebuliz")),
    ("dressing", ("dressing",)),
)

OT_PROCEDURE_KEYWORDS: KeywordTable = (
    ("lscs", ("lscs", "lucs")),
    ("gb_ot", ("gb", "gallbladder", "gall bladder")),
    ("nvd", ("nvd",)),
    ("dc", ("d&c",)),
)

# Doctor-side services and medicine never count as theatre revenue.
OT_EXCLUSION_KEYWORDS: Tuple[str, ...] = (
    "medicine",
    "doctor round",
    "prescription",
    "surgeon",
    "anaesthetist",
    "assistant",
    "obstetrician",
    "midwife",
)

CONSERVATIVE_CATEGORIES: Tuple[str, ...] = ("conservative",)

# Indoor lines sold from the pharmacy counter; matched on the whole label.
INDOOR_MEDICINE_LABELS: Tuple[str, ...] = ("Medicine",)
OT_CATEGORIES: Tuple[str, ...] = ("operation", "nvd and d&c")

EXPENSE_CATEGORIES: Tuple[str, ...] = (
    "Stuff salary",
    "Generator",
    "Motorcycle",
    "Marketing",
    "Clinic_Dev",
    "Bills",
    "Reagent buy",
    "X-Ray",
    "House rent",
    "Stationery",
    "Food",
    "Doctor donation",
    "Instruments",
    "Press",
    "License",
    "Installment",
    "Mobile",
    "Others",
    "Old Loan Repay",
)

EXPENSE_SYNONYMS: Dict[str, str] = {
    "Clinic development": "Clinic_Dev",
    "Diagnostic development": "Clinic_Dev",
    "Electricity bill": "Bills",
    "Food/Refreshment": "Food",
    "Repair/Instruments": "Instruments",
    "Instruments buy/ repair": "Instruments",
    "License/Official": "License",
    "License cost": "License",
    "Bank/NGO Installment": "Installment",
    "Interest/Loan": "Installment",
}

EXPENSE_SCOPES: Dict[str, Tuple[str, ...]] = {
    "diagnostic": (
        "House rent",
        "Electricity bill",
        "Stuff salary",
        "Reagent buy",
        "Doctor donation",
        "Instruments buy/ repair",
        "Diagnostic development",
        "Maintenance",
        "License cost",
        "Others",
    ),
    "clinic": (
        "Stuff salary",
        "Generator",
        "Motorcycle",
        "Marketing",
        "Clinic development",
        "Medicine buy (Pharmacy)",
        "X-Ray",
        "House rent",
        "Stationery",
        "Food/Refreshment",
        "Doctor donation",
        "Repair/Instruments",
        "Press",
        "License/Official",
        "Bank/NGO Installment",
        "Mobile",
        "Interest/Loan",
        "Others",
        "Old Loan Repay",
    ),
    "pharmacy": (),
}


class RulebookError(ValueError):
    """Raised when a rulebook document has the wrong shape."""


# -----------------------------
# Rulebook
# -----------------------------


@dataclass(frozen=True)
class Rulebook:
    version: str = RULE_VERSION
    lab_due_prefix: str = "INV"
    test_keywords: KeywordTable = DIAGNOSTIC_TEST_KEYWORDS
    test_fallback: str = "pathology"
    fund_keywords: KeywordTable = CLINIC_FUND_KEYWORDS
    conservative_categories: Tuple[str, ...] = CONSERVATIVE_CATEGORIES
    ot_categories: Tuple[str, ...] = OT_CATEGORIES
    ot_keywords: KeywordTable = OT_PROCEDURE_KEYWORDS
    ot_exclusions: Tuple[str, ...] = OT_EXCLUSION_KEYWORDS
    expense_categories: Tuple[str, ...] = EXPENSE_CATEGORIES
    expense_fallback: str = "Others"
    expense_synonyms: Mapping[str, str] = field(default_factory=lambda: dict(EXPENSE_SYNONYMS))
    expense_scopes: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: dict(EXPENSE_SCOPES))
    indoor_medicine_labels: Tuple[str, ...] = INDOOR_MEDICINE_LABELS

    @classmethod
    def from_yaml(cls, path: Union[Path, str]) -> "Rulebook":
        path = Path(path)
        with path.open("r", encoding="utf-8") as rules_file:
            loaded = yaml.safe_load(rules_file)

        if not isinstance(loaded, dict):
            raise RulebookError(f"Rulebook file must contain a mapping at root: {path}")
        return cls.from_mapping(loaded)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Rulebook":
        defaults = cls()
        diagnostic = _section(data, "diagnostic")
        clinic = _section(data, "clinic")
        expenses = _section(data, "expenses")
        pharmacy = _section(data, "pharmacy")

        expense_categories = _strings(expenses, "categories", defaults.expense_categories)
        expense_fallback = str(expenses.get("fallback", defaults.expense_fallback))
        if expense_fallback not in expense_categories:
            raise RulebookError(f"Expense fallback {expense_fallback!r} is not a listed category.")

        synonyms = expenses.get("synonyms", defaults.expense_synonyms)
        if not isinstance(synonyms, Mapping):
            raise RulebookError("expenses.synonyms must be a mapping of label -> category")

        scopes = expenses.get("scopes", defaults.expense_scopes)
        if not isinstance(scopes, Mapping) or any(isinstance(v, str) for v in scopes.values()):
            raise RulebookError("expenses.scopes must be a mapping of ledger -> labels")

        return cls(
            version=str(data.get("version", defaults.version)),
            lab_due_prefix=str(diagnostic.get("due_prefix", defaults.lab_due_prefix)),
            test_keywords=_keyword_table(diagnostic, "tests", defaults.test_keywords),
            test_fallback=str(diagnostic.get("fallback", defaults.test_fallback)),
            fund_keywords=_keyword_table(clinic, "fund", defaults.fund_keywords),
            conservative_categories=_strings(clinic, "conservative_categories", defaults.conservative_categories),
            ot_categories=_strings(clinic, "ot_categories", defaults.ot_categories),
            ot_keywords=_keyword_table(clinic, "ot_procedures", defaults.ot_keywords),
            ot_exclusions=_strings(clinic, "ot_exclusions", defaults.ot_exclusions),
            expense_categories=expense_categories,
            expense_fallback=expense_fallback,
            expense_synonyms={str(k): str(v) for k, v in synonyms.items()},
            expense_scopes={str(k): tuple(str(v) for v in (labels or ())) for k, labels in scopes.items()},
            indoor_medicine_labels=_strings(pharmacy, "indoor_medicine_labels", defaults.indoor_medicine_labels),
        )


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, Mapping):
        raise RulebookError(f"Rulebook section {name!r} must be a mapping")
    return section


def _strings(section: Mapping[str, Any], key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if key not in section:
        return default
    values = section[key]
    if not isinstance(values, list):
        raise RulebookError(f"{key} must be a list of strings")
    return tuple(str(v) for v in values)


def _keyword_table(section: Mapping[str, Any], key: str, default: KeywordTable) -> KeywordTable:
    if key not in section:
        return default
    entries = section[key]
    if not isinstance(entries, list):
        raise RulebookError(f"{key} must be an ordered list of {{tag, keywords}} entries")
    table = []
    for entry in entries:
        if not isinstance(entry, Mapping) or "tag" not in entry or not isinstance(entry.get("keywords"), list):
            raise RulebookError(f"Invalid {key} entry: {entry!r}")
        table.append((str(entry["tag"]), tuple(str(k) for k in entry["keywords"])))
    return tuple(table)


# -----------------------------
# Rule tables
# -----------------------------


@dataclass(frozen=True)
class ClassificationRule:
    tag: str
    predicate: Callable[[str], bool]
    keywords: Tuple[str, ...] = ()


def keyword_rule(tag: str, keywords: Iterable[str]) -> ClassificationRule:
    lowered = tuple(normalize_label(k) for k in keywords)
    return ClassificationRule(tag=tag, predicate=lambda corpus: _contains_any(corpus, lowered), keywords=lowered)


def build_rules(table: KeywordTable) -> Tuple[ClassificationRule, ...]:
    return tuple(keyword_rule(tag, keywords) for tag, keywords in table)


def first_match(rules: Iterable[ClassificationRule], corpus: str) -> Optional[ClassificationRule]:
    for rule in rules:
        if rule.predicate(corpus):
            return rule
    return None


def _contains_any(corpus: str, keywords: Iterable[str]) -> bool:
    return any(keyword and keyword in corpus for keyword in keywords)


class CategoryClassifier:
    def __init__(self, rulebook: Optional[Rulebook] = None) -> None:
        self.rulebook = rulebook or Rulebook()
        self.test_rules = build_rules(self.rulebook.test_keywords)
        self.fund_rules = build_rules(self.rulebook.fund_keywords)
        self.ot_rules = build_rules(self.rulebook.ot_keywords)

        self._conservative = tuple(normalize_label(c) for c in self.rulebook.conservative_categories)
        self._ot_categories = tuple(normalize_label(c) for c in self.rulebook.ot_categories)
        self._ot_exclusions = tuple(normalize_label(k) for k in self.rulebook.ot_exclusions)
        self._canonical = {normalize_label(c): c for c in self.rulebook.expense_categories}
        self._synonyms = {normalize_label(k): v for k, v in self.rulebook.expense_synonyms.items()}
        self._scopes = {
            ledger: frozenset(normalize_label(label) for label in labels)
            for ledger, labels in self.rulebook.expense_scopes.items()
        }
        self._indoor_medicine = frozenset(normalize_label(label) for label in self.rulebook.indoor_medicine_labels)

    # tag vocabularies, in display order

    def diagnostic_tags(self) -> Tuple[str, ...]:
        return (self.rulebook.test_fallback,) + tuple(rule.tag for rule in self.test_rules)

    def clinic_tags(self) -> Tuple[str, ...]:
        tags = [rule.tag for rule in self.fund_rules]
        tags.append(CONSERVATIVE)
        tags.extend(rule.tag for rule in self.ot_rules)
        tags.extend([OTHERS_OT, OTHERS])
        return tuple(dict.fromkeys(tags))

    def expense_tags(self, ledger: str) -> Tuple[str, ...]:
        if ledger not in self._scopes:
            return self.rulebook.expense_categories
        reachable = {self.classify_expense(label) for label in self.rulebook.expense_scopes[ledger]}
        return tuple(c for c in self.rulebook.expense_categories if c in reachable)

    # classification

    def classify_test(self, test_name: Optional[str]) -> str:
        rule = first_match(self.test_rules, normalize_label(test_name))
        return rule.tag if rule else self.rulebook.test_fallback

    def classify_service_line(
        self,
        line: InvoiceLineItem,
        service_category: Optional[str] = None,
        sub_category: Optional[str] = None,
    ) -> str:
        if not line.is_clinic_fund or self.is_indoor_medicine(line):
            return EXCLUDED

        label = normalize_label(line.label)
        rule = first_match(self.fund_rules, label)
        if rule:
            return rule.tag

        category = normalize_label(line.service_category or service_category)
        if _contains_any(category, self._conservative):
            return CONSERVATIVE

        if _contains_any(category, self._ot_categories):
            corpus = f"{label}\n{normalize_label(sub_category)}"
            rule = first_match(self.ot_rules, corpus)
            if rule:
                return rule.tag
            if not _contains_any(label, self._ot_exclusions):
                return OTHERS_OT

        return OTHERS

    def classify_expense(self, category: Optional[str]) -> str:
        label = normalize_label(category)
        canonical = normalize_label(self._synonyms.get(label, label))
        return self._canonical.get(canonical, self.rulebook.expense_fallback)

    def expense_in_scope(self, ledger: str, category: Optional[str]) -> bool:
        scope = self._scopes.get(ledger)
        if scope is None:
            return True
        if normalize_label(category) in scope:
            return True
        fallback = self.rulebook.expense_fallback
        return normalize_label(fallback) in scope and self.classify_expense(category) == fallback

    def is_indoor_medicine(self, line: InvoiceLineItem) -> bool:
        return normalize_label(line.label) in self._indoor_medicine

    def is_lab_due(self, invoice_id: Optional[str]) -> bool:
        return (invoice_id or "").startswith(self.rulebook.lab_due_prefix)

    def classify(self, item: Union[InvoiceLineItem, ExpenseItem], invoice: Optional[Invoice] = None) -> str:
        if isinstance(item, ExpenseItem):
            return self.classify_expense(item.category)
        if not isinstance(item, InvoiceLineItem):
            raise TypeError(f"Cannot classify {type(item).__name__}")

        if invoice is not None:
            kind = invoice.kind
        else:
            kind = "lab" if item.is_clinic_fund is None else "indoor"

        if kind == "lab":
            return self.classify_test(item.label)
        if kind == "indoor":
            return self.classify_service_line(
                item,
                service_category=invoice.service_category if invoice else None,
                sub_category=invoice.sub_category if invoice else None,
            )
        if kind == "pharmacy_sale":
            return MEDICINE_SALES
        if kind == "pharmacy_purchase":
            return MEDICINE_PURCHASE
        raise TypeError(f"Cannot classify lines of a {kind!r} invoice")


_default_classifier = CategoryClassifier()


def classify(item: Union[InvoiceLineItem, ExpenseItem], invoice: Optional[Invoice] = None) -> str:
    return _default_classifier.classify(item, invoice)


__all__ = [
    "RULE_VERSION",
    "EXCLUDED",
    "ClassificationRule",
    "CategoryClassifier",
    "Rulebook",
    "RulebookError",
    "build_rules",
    "classify",
    "first_match",
    "keyword_rule",
]
