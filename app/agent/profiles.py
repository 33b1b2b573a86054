"""
Workflow profiles: label sets, classifier, and responder registries.

Both profiles run on the same engine; they differ only in this data.
"rustx" is the two-label catalogue workflow. "catalogue" is the full label
set, where several labels deliberately have no responder and fall back to
returning the classification.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from app.agent.responders import ResponderDescriptor, ResponderRegistry
from app.agent.tools import file_search_tool, web_search_tool
from app.core.config import CLASSIFIER_MODEL, RESPONDER_MAX_TOKENS, RESPONDER_MODEL

CLASSIFIER_SETTINGS = {"reasoning": {"effort": "minimal", "summary": "auto"}, "store": True}

ANSWER_POLICY = """Professionally respond to user queries about rustx (https://rustx.net/) using only information supported by the user's context and the rustx catalogue. Always give a complete, relevant, and concise answer to the main query first.

- Do not speculate or guess; use only verified catalogue or user-provided information.
- If details are missing, say what additional information is needed, give any partial answer possible, then end with one satisfaction or clarifying question.
- Never begin with a question unless the catalogue provides no applicable information.
"""

PRODUCT_FORMAT = """
## Output Format
- Specific product queries: use the subheadings "Why This Product", "Key Advantages", "Technical Aspects", "Safety and Compliance", "Value Proposition", "Ordering and Action Steps" as appropriate, followed by a single satisfaction or clarifying question.
- General queries: one concise paragraph answering the question directly, with an optional closing question.
"""


@dataclass(frozen=True)
class WorkflowProfile:
    name: str
    labels: tuple[str, ...]
    classifier: ResponderDescriptor
    registry: ResponderRegistry


def _responder(name: str, focus: str, tools: tuple = (), fmt: str = "") -> ResponderDescriptor:
    return ResponderDescriptor(
        name=name,
        instructions=f"{ANSWER_POLICY}\nFocus: {focus}\n{fmt}",
        model=RESPONDER_MODEL,
        tools=tools,
        model_settings={"temperature": 1, "top_p": 1, "max_output_tokens": RESPONDER_MAX_TOKENS, "store": True},
    )


def _classifier(label_help: Mapping[str, str]) -> ResponderDescriptor:
    lines = "\n".join(f"- {label}: {desc}" for label, desc in label_help.items())
    return ResponderDescriptor(
        name="Classifier",
        instructions=(
            "You are a classifier agent whose role is to classify between different types of agents "
            "based on the user input. Choose exactly one label.\n" + lines
        ),
        model=CLASSIFIER_MODEL,
        model_settings=CLASSIFIER_SETTINGS,
    )


def rustx_profile(vector_store_id: str) -> WorkflowProfile:
    catalogue = (file_search_tool([vector_store_id]),)
    labels = {
        "Catalogue_Agent": "questions about the rustx catalogue or a specific product in it",
        "Product_Agent": "product questions that need a dedicated product specialist",
    }
    registry = ResponderRegistry(
        labels,
        {
            "Catalogue_Agent": _responder(
                "Catalogue and Product Agent",
                "any catalogue or product question, answered with catalogue evidence",
                catalogue,
                PRODUCT_FORMAT,
            ),
            "Product_Agent": None,
        },
    )
    return WorkflowProfile("rustx", tuple(labels), _classifier(labels), registry)


def catalogue_profile(vector_store_id: str) -> WorkflowProfile:
    catalogue = (file_search_tool([vector_store_id]),)
    labels = {
        "Product_catalogue_agent": "browsing the catalogue, product ranges and specific products",
        "Technical_specification_agent": "dimensions, grades, materials, tolerances and standards",
        "Pricing_and_quotation_agent": "prices, quotations, discounts and minimum order quantities",
        "Order_and_delivery_agent": "placing orders, lead times, shipping and delivery",
        "Safety_and_compliance_agent": "certifications, safety data and regulatory compliance",
        "Installation_and_maintenance_agent": "installation, usage, care and maintenance",
        "Industry_news_agent": "market trends and industry news related to the products",
        "Complaints_agent": "complaints, returns and warranty claims",
        "Careers_agent": "jobs and working at rustx",
        "Small_talk_agent": "greetings and conversation unrelated to the catalogue",
    }
    entries: dict[str, ResponderDescriptor | None] = {
        "Product_catalogue_agent": _responder(
            "Product Catalogue Agent", "catalogue overviews and specific products", catalogue, PRODUCT_FORMAT
        ),
        "Technical_specification_agent": _responder(
            "Technical Specification Agent", "technical data: dimensions, grades, materials, standards", catalogue
        ),
        "Pricing_and_quotation_agent": _responder(
            "Pricing and Quotation Agent",
            "pricing and quotations; never invent prices, ask for quantities and specifications",
            catalogue,
        ),
        "Order_and_delivery_agent": _responder(
            "Order and Delivery Agent", "ordering steps, lead times and delivery options", catalogue
        ),
        "Safety_and_compliance_agent": _responder(
            "Safety and Compliance Agent", "certifications, safety and compliance information", catalogue
        ),
        "Installation_and_maintenance_agent": _responder(
            "Installation and Maintenance Agent", "installation, usage and maintenance guidance", catalogue
        ),
        "Industry_news_agent": _responder(
            "Industry News Agent",
            "industry trends relevant to the catalogue; cite sources found on the web",
            catalogue + (web_search_tool(),),
        ),
        "Complaints_agent": None,
        "Careers_agent": None,
        "Small_talk_agent": None,
    }
    registry = ResponderRegistry(labels, entries)
    return WorkflowProfile("catalogue", tuple(labels), _classifier(labels), registry)


PROFILES = {"rustx": rustx_profile, "catalogue": catalogue_profile}


def build_profile(name: str, vector_store_id: str) -> WorkflowProfile:
    try:
        factory = PROFILES[name]
    except KeyError:
        raise ValueError(f"Unknown workflow profile {name!r}; expected one of {sorted(PROFILES)}") from None
    return factory(vector_store_id)
