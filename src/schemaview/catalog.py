"""Declarative schemas for the CRM entities: lead, contact, account, opportunity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from .errors import SchemaError
from .schema import ColumnSchema, FieldSchema, Section, columns_from_fields, normalize_fields, normalize_sections


LEAD_STATUSES = ["New", "Contacted", "Qualified", "Unqualified"]

LEAD_SOURCES = [
    "Website",
    "Phone Inquiry",
    "Partner Referral",
    "Trade Show",
    "Email Campaign",
    "Social Media",
    "Other",
]

RATINGS = ["Hot", "Warm", "Cold"]

TIMELINES = ["Immediate", "1-3 months", "3-6 months", "6-12 months", "12+ months"]

OPPORTUNITY_STAGES = [
    "Prospecting",
    "Qualification",
    "Needs Analysis",
    "Value Proposition",
    "Id. Decision Makers",
    "Perception Analysis",
    "Proposal/Price Quote",
    "Negotiation/Review",
    "Closed Won",
    "Closed Lost",
]

OPPORTUNITY_TYPES = [
    "Existing Customer - Upgrade",
    "Existing Customer - Replacement",
    "Existing Customer - Downgrade",
    "New Customer",
]

ACCOUNT_TYPES = [
    "Prospect",
    "Customer - Direct",
    "Customer - Channel",
    "Channel Partner / Reseller",
    "Installation Partner",
    "Technology Partner",
    "Other",
]

OWNERSHIP_TYPES = ["Public", "Private", "Subsidiary", "Government", "Non-profit", "Other"]

INDUSTRIES = [
    "Agriculture", "Apparel", "Banking", "Biotechnology", "Chemicals", "Communications",
    "Construction", "Consulting", "Education", "Electronics", "Energy", "Engineering",
    "Entertainment", "Environmental", "Finance", "Food & Beverage", "Government", "Healthcare",
    "Hospitality", "Insurance", "Machinery", "Manufacturing", "Media", "Not For Profit",
    "Other", "Recreation", "Retail", "Shipping", "Technology", "Telecommunications",
    "Transportation", "Utilities",
]

_NAME_RULES = {"min_length": {"value": 2, "message": "Must be at least 2 characters"}}
_POSITIVE = {"min": {"value": 0, "message": "Must be positive"}}


@dataclass(frozen=True)
class EntitySchema:
    name: str
    title: str
    collection: str
    fields: Tuple[FieldSchema, ...]
    columns: Tuple[ColumnSchema, ...]
    sections: Tuple[Section, ...] = ()
    search_fields: Tuple[str, ...] = ()

    def field(self, name: str) -> FieldSchema:
        for fschema in self.fields:
            if fschema.name == name:
                return fschema
        raise SchemaError(f"Unknown field: {name}", f"{self.name}.fields")


def _entity(
    name: str,
    title: str,
    collection: str,
    fields: List[dict],
    columns: List[str],
    sections: List[dict],
    search_fields: List[str],
) -> EntitySchema:
    fschemas = normalize_fields(fields)
    return EntitySchema(
        name=name,
        title=title,
        collection=collection,
        fields=tuple(fschemas),
        columns=tuple(columns_from_fields(fschemas, columns)),
        sections=tuple(normalize_sections(sections)),
        search_fields=tuple(search_fields),
    )


LEAD = _entity(
    "lead",
    "Leads",
    "leads",
    [
        {"name": "firstName", "required": True, "rules": _NAME_RULES},
        {"name": "lastName", "required": True, "rules": _NAME_RULES},
        {"name": "company", "required": True},
        {"name": "title"},
        {"name": "email", "type": "email"},
        {"name": "phone", "type": "phone"},
        {"name": "mobilePhone", "type": "phone"},
        {"name": "website", "type": "url"},
        {"name": "status", "type": "select", "required": True, "options": LEAD_STATUSES, "default": "New"},
        {"name": "leadSource", "type": "select", "required": True, "options": LEAD_SOURCES},
        {"name": "rating", "type": "select", "options": RATINGS, "default": "Cold"},
        {"name": "industry", "type": "select", "options": INDUSTRIES},
        {"name": "annualRevenue", "type": "currency", "rules": _POSITIVE},
        {"name": "numberOfEmployees", "type": "number", "label": "Number of Employees", "rules": _POSITIVE},
        {"name": "budget", "type": "currency", "rules": _POSITIVE},
        {"name": "timeline", "type": "select", "options": TIMELINES},
        {"name": "isConverted", "type": "boolean", "label": "Converted", "disabled": True},
        {"name": "description", "type": "textarea"},
        {"name": "createdAt", "type": "datetime", "label": "Created", "disabled": True},
    ],
    ["firstName", "lastName", "company", "email", "phone", "status", "leadSource", "rating", "createdAt"],
    [
        {"title": "Lead Information", "fields": ["firstName", "lastName", "title", "company", "status", "leadSource", "rating"]},
        {"title": "Contact Information", "fields": ["email", "phone", "mobilePhone", "website"]},
        {
            "title": "Company Information",
            "fields": ["industry", "annualRevenue", "numberOfEmployees", "budget", "timeline"],
        },
        {"title": "Additional Information", "fields": ["description", "isConverted", "createdAt"]},
    ],
    ["firstName", "lastName", "company", "email"],
)

CONTACT = _entity(
    "contact",
    "Contacts",
    "contacts",
    [
        {"name": "firstName", "required": True, "rules": _NAME_RULES},
        {"name": "lastName", "required": True, "rules": _NAME_RULES},
        {"name": "title"},
        {"name": "department"},
        {"name": "email", "type": "email"},
        {"name": "phone", "type": "phone"},
        {"name": "mobilePhone", "type": "phone"},
        {"name": "leadSource", "type": "select", "options": LEAD_SOURCES},
        {"name": "birthdate", "type": "date"},
        {"name": "linkedInProfile", "type": "url", "label": "LinkedIn Profile"},
        {"name": "emailOptOut", "type": "boolean", "label": "Email Opt Out"},
        {"name": "doNotCall", "type": "boolean"},
        {"name": "description", "type": "textarea"},
        {"name": "createdAt", "type": "datetime", "label": "Created", "disabled": True},
    ],
    ["firstName", "lastName", "title", "email", "phone", "createdAt"],
    [
        {"title": "Contact Information", "fields": ["firstName", "lastName", "title", "department", "email", "phone", "mobilePhone"]},
        {"title": "Preferences", "fields": ["leadSource", "emailOptOut", "doNotCall"]},
        {"title": "Additional Information", "fields": ["birthdate", "linkedInProfile", "description", "createdAt"]},
    ],
    ["firstName", "lastName", "email", "title"],
)

ACCOUNT = _entity(
    "account",
    "Accounts",
    "accounts",
    [
        {"name": "name", "label": "Account Name", "required": True},
        {"name": "type", "type": "select", "options": ACCOUNT_TYPES},
        {"name": "industry", "type": "select", "options": INDUSTRIES},
        {"name": "website", "type": "url"},
        {"name": "phone", "type": "phone"},
        {"name": "annualRevenue", "type": "currency", "rules": _POSITIVE},
        {"name": "employees", "type": "number", "rules": _POSITIVE},
        {"name": "ownership", "type": "select", "options": OWNERSHIP_TYPES},
        {"name": "tickerSymbol"},
        {"name": "rating", "type": "select", "options": RATINGS},
        {"name": "description", "type": "textarea"},
        {"name": "createdAt", "type": "datetime", "label": "Created", "disabled": True},
    ],
    ["name", "type", "industry", "phone", "annualRevenue", "createdAt"],
    [
        {"title": "Account Information", "fields": ["name", "type", "industry", "rating", "ownership", "tickerSymbol"]},
        {"title": "Contact Details", "fields": ["website", "phone"]},
        {"title": "Financials", "fields": ["annualRevenue", "employees"]},
        {"title": "Additional Information", "fields": ["description", "createdAt"]},
    ],
    ["name", "industry", "website"],
)

OPPORTUNITY = _entity(
    "opportunity",
    "Opportunities",
    "opportunities",
    [
        {"name": "name", "label": "Opportunity Name", "required": True},
        {"name": "stage", "type": "select", "required": True, "options": OPPORTUNITY_STAGES, "default": "Prospecting"},
        {"name": "amount", "type": "currency", "rules": {"min": {"value": 0, "message": "Amount cannot be negative"}}},
        {
            "name": "probability",
            "type": "percentage",
            "default": 10,
            "rules": {"min": 0, "max": 100},
        },
        {"name": "closeDate", "type": "date", "required": True},
        {"name": "type", "type": "select", "options": OPPORTUNITY_TYPES},
        {"name": "leadSource", "type": "select", "options": LEAD_SOURCES},
        {"name": "nextStep", "rules": {"max_length": 255}},
        {
            "name": "lossReason",
            "type": "textarea",
            "visible_when": {"op": "eq", "left": {"var": "values.stage"}, "right": {"literal": "Closed Lost"}},
            "required_when": {"op": "eq", "left": {"var": "values.stage"}, "right": {"literal": "Closed Lost"}},
        },
        {"name": "description", "type": "textarea", "rules": {"max_length": 1000}},
        {"name": "isPrivate", "type": "boolean", "label": "Private"},
        {"name": "createdAt", "type": "datetime", "label": "Created", "disabled": True},
    ],
    ["name", "stage", "amount", "probability", "closeDate", "createdAt"],
    [
        {"title": "Opportunity Information", "fields": ["name", "stage", "type", "leadSource", "isPrivate"]},
        {"title": "Financials", "fields": ["amount", "probability", "closeDate"]},
        {"title": "Sales Process", "fields": ["nextStep", "lossReason", "description", "createdAt"]},
    ],
    ["name", "nextStep"],
)

CATALOG: Dict[str, EntitySchema] = {e.name: e for e in (LEAD, CONTACT, ACCOUNT, OPPORTUNITY)}


def get_entity(name: str) -> EntitySchema:
    entity = CATALOG.get(name)
    if entity is None:
        entity = next((e for e in CATALOG.values() if e.collection == name), None)
    if entity is None:
        raise SchemaError(f"Unknown entity: {name}", "entity")
    return entity


def entity_names() -> List[str]:
    return sorted(CATALOG)


def describe(entity: EntitySchema) -> Dict[str, Any]:
    return {
        "name": entity.name,
        "title": entity.title,
        "collection": entity.collection,
        "fields": [{"name": f.name, "type": f.type.value, "label": f.label, "required": f.required} for f in entity.fields],
        "columns": [c.key for c in entity.columns],
        "sections": [s.title for s in entity.sections],
    }
