"""Practice question generation from parametrized templates.

A template carries text with ``{name}`` placeholders, a solution text with
the same placeholders, and a ``parameters`` mapping. Each parameter is
either an inclusive integer range ``{"min": 1, "max": 12}`` that gets
sampled, or a fixed scalar. The fixed ``answer`` key is the fallback
answer when no derivation rule resolves one.

Derivation rules are keyed by :class:`TemplateKind`. Templates that declare
a kind run exactly that rule. Templates without one fall back to the legacy
table, which picks rules by parameter names plus a keyword in the template
text, in a fixed priority order where the first rule to set a value wins.
"""
import math
import random
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from exam_tutor.models import GeneratedQuestion, QuestionTemplate

# Identifiers in braces that are not the argument of a LaTeX command like \hat{i}
PLACEHOLDER_RE = re.compile(r"(?<![A-Za-z\\])\{([A-Za-z_][A-Za-z0-9_]*)\}")


class TemplateKind(str, Enum):
    POWER_RULE = "power_rule"
    LINEAR_INTEGRAL = "linear_integral"
    MAGNITUDE = "magnitude"
    LIMIT = "limit"
    FORCE_MASS = "force_mass"
    VELOCITY = "velocity"
    VECTOR_ANGLE = "vector_angle"
    DOT_PRODUCT = "dot_product"
    PLANE_DISTANCE = "plane_distance"
    MASS_NUMBER = "mass_number"
    MOLES = "moles"
    OUTPUT = "output"
    QUADRATIC_INTEGRAL = "quadratic_integral"
    INTEGRATION_BY_PARTS = "integration_by_parts"
    MIDPOINT_RULE = "midpoint_rule"


def round2(value: float) -> float:
    """Round to 2 decimals, halves away from zero."""
    return math.copysign(math.floor(abs(value) * 100 + 0.5) / 100, value)


def format_number(value) -> str:
    """Render a value the way it appears in question text: 5 not 5.0."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _norm(*components: float) -> float:
    return math.sqrt(sum(c * c for c in components))


def _power_rule(v: dict) -> dict:
    return {"answer": v["a"] * v["n"], "nm1": v["n"] - 1}


def _linear_integral(v: dict) -> dict:
    return {"answer": v["a"] * v["b"] * v["b"] / 2}


def _magnitude(v: dict) -> dict:
    a2 = v["a"] * v["a"]
    b2 = v["b"] * v["b"]
    return {"a2": a2, "b2": b2, "answer": round2(math.sqrt(a2 + b2))}


def _limit(v: dict) -> dict:
    return {"answer": v["a2"] * v["a"] + v["b"]}


def _force_mass(v: dict) -> dict:
    if v["m"] == 0:
        return {}
    return {"answer": round2(v["f"] / v["m"])}


def _velocity(v: dict) -> dict:
    return {"answer": v["a"] * v["t"]}


def _vector_angle(v: dict) -> dict:
    dot = v["a1"] * v["b1"] + v["a2"] * v["b2"]
    norm_a = _norm(v["a1"], v["a2"])
    norm_b = _norm(v["b1"], v["b2"])
    if norm_a == 0 or norm_b == 0:
        return {}
    cosine = max(-1.0, min(1.0, dot / (norm_a * norm_b)))
    return {
        "dot": dot,
        "norm_a": round2(norm_a),
        "norm_b": round2(norm_b),
        "answer": round2(math.degrees(math.acos(cosine))),
    }


def _dot_product(v: dict) -> dict:
    p1 = v["a1"] * v["b1"]
    p2 = v["a2"] * v["b2"]
    return {"p1": p1, "p2": p2, "answer": p1 + p2}


def _plane_distance(v: dict) -> dict:
    norm = _norm(v["a"], v["b"], v["c"])
    if norm == 0:
        return {}
    numerator = abs(v["a"] * v["x1"] + v["b"] * v["y1"] + v["c"] * v["z1"] - v["d"])
    return {
        "numerator": numerator,
        "norm2": v["a"] ** 2 + v["b"] ** 2 + v["c"] ** 2,
        "answer": round2(numerator / norm),
    }


def _mass_number(v: dict) -> dict:
    return {"answer": v["p"] + v["n"]}


def _moles(v: dict) -> dict:
    if v["mm"] == 0:
        return {}
    return {"answer": round2(v["g"] / v["mm"])}


def _output(v: dict) -> dict:
    return {"answer": v["n"] * v["a"]}


def _quadratic_integral(v: dict) -> dict:
    # integral of a*x^2 from 1 to b
    b3 = v["b"] ** 3
    return {"b3": b3, "answer": round2(v["a"] * (b3 - 1) / 3)}


def _integration_by_parts(v: dict) -> dict:
    # integral of a*x*e^x from 0 to 1 is a*[(x-1)e^x] = a
    return {"answer": v["a"]}


def _midpoint_rule(v: dict) -> dict:
    # midpoint sums are exact for the linear integrand x on [0, b]
    return {"dx": round2(v["b"] / v["n"]), "answer": round2(v["b"] * v["b"] / 2)}


@dataclass(frozen=True)
class Rule:
    kind: TemplateKind
    requires: tuple
    compute: Callable[[dict], dict]
    keyword: Optional[str] = None

    def has_inputs(self, values: dict) -> bool:
        return all(name in values for name in self.requires)

    def matches(self, values: dict, template_text: str) -> bool:
        if not self.has_inputs(values):
            return False
        return self.keyword is None or self.keyword in template_text


RULES = {
    rule.kind: rule
    for rule in (
        Rule(TemplateKind.POWER_RULE, ("a", "n"), _power_rule),
        Rule(TemplateKind.LINEAR_INTEGRAL, ("a", "b"), _linear_integral, "integral"),
        Rule(TemplateKind.MAGNITUDE, ("a", "b"), _magnitude, "magnitude"),
        Rule(TemplateKind.LIMIT, ("a2", "a", "b"), _limit, "limit"),
        Rule(TemplateKind.FORCE_MASS, ("m", "f"), _force_mass),
        Rule(TemplateKind.VELOCITY, ("a", "t"), _velocity, "velocity"),
        Rule(TemplateKind.VECTOR_ANGLE, ("a1", "a2", "b1", "b2"), _vector_angle, "angle"),
        Rule(TemplateKind.DOT_PRODUCT, ("a1", "a2", "b1", "b2"), _dot_product),
        Rule(TemplateKind.PLANE_DISTANCE, ("a", "b", "c", "d", "x1", "y1", "z1"), _plane_distance, "plane"),
        Rule(TemplateKind.MASS_NUMBER, ("p", "n"), _mass_number, "mass number"),
        Rule(TemplateKind.MOLES, ("g", "mm"), _moles),
        Rule(TemplateKind.OUTPUT, ("n", "a"), _output, "output"),
        Rule(TemplateKind.QUADRATIC_INTEGRAL, ("a", "b"), _quadratic_integral),
        Rule(TemplateKind.INTEGRATION_BY_PARTS, ("a",), _integration_by_parts),
        Rule(TemplateKind.MIDPOINT_RULE, ("n", "b"), _midpoint_rule),
    )
}

# Keyword dispatch for templates without an explicit kind, highest priority first.
LEGACY_ORDER = (
    TemplateKind.POWER_RULE,
    TemplateKind.LINEAR_INTEGRAL,
    TemplateKind.MAGNITUDE,
    TemplateKind.LIMIT,
    TemplateKind.FORCE_MASS,
    TemplateKind.VELOCITY,
    TemplateKind.VECTOR_ANGLE,
    TemplateKind.DOT_PRODUCT,
    TemplateKind.PLANE_DISTANCE,
    TemplateKind.MASS_NUMBER,
    TemplateKind.MOLES,
    TemplateKind.OUTPUT,
)


def is_range(rule) -> bool:
    return isinstance(rule, dict) and "min" in rule and "max" in rule


def split_parameters(parameters: dict) -> tuple[dict, dict]:
    """Separate sampled ranges from fixed values."""
    ranges, fixed = {}, {}
    for name, rule in parameters.items():
        if is_range(rule):
            ranges[name] = rule
        else:
            fixed[name] = rule
    return ranges, fixed


def sample_parameters(ranges: dict) -> dict:
    return {name: random.randint(int(r["min"]), int(r["max"])) for name, r in ranges.items()}


def derive_values(template_text: str, values: dict, kind: str | None = None) -> dict:
    """Run the derivation rules over sampled values and return what they produce."""
    if kind:
        rule = RULES[TemplateKind(kind)]
        if not rule.has_inputs(values):
            logger.debug(f"Kind {rule.kind.value} needs {rule.requires}, got {sorted(values)}")
            return {}
        return rule.compute(values)
    derived = {}
    for rule_kind in LEGACY_ORDER:
        rule = RULES[rule_kind]
        if rule.matches(values, template_text):
            for key, value in rule.compute(values).items():
                derived.setdefault(key, value)
    return derived


def resolve_values(template: QuestionTemplate, sampled: dict, fixed: dict) -> dict:
    computed = dict(sampled)
    for key, value in derive_values(template.template_text, sampled, template.kind).items():
        computed.setdefault(key, value)
    for key, value in fixed.items():
        computed.setdefault(key, value)
    return computed


def substitute(text: str, values: dict) -> str:
    """Replace every ``{key}`` in one pass, longest names first."""
    if not values:
        return text
    names = sorted(values, key=len, reverse=True)
    pattern = re.compile(r"\{(" + "|".join(re.escape(n) for n in names) + r")\}")
    return pattern.sub(lambda m: format_number(values[m.group(1)]), text)


def find_placeholders(text: str) -> set[str]:
    return set(PLACEHOLDER_RE.findall(text))


def generate(template: QuestionTemplate) -> GeneratedQuestion:
    ranges, fixed = split_parameters(template.parameters)
    sampled = sample_parameters(ranges)
    computed = resolve_values(template, sampled, fixed)
    answer = computed.get("answer")
    if answer is None:
        logger.warning(f"Template {template.id} produced no answer for {sampled}")
    return GeneratedQuestion(
        question_text=substitute(template.template_text, computed),
        solution_steps=substitute(template.solution_template, computed),
        correct_answer=format_number(answer) if answer is not None else "",
        parameters=sampled,
    )


def check_template(template: QuestionTemplate) -> dict:
    """Dry-run a template at the low end of each range.

    Returns whether an answer resolves and which placeholders would be
    left in the rendered text.
    """
    ranges, fixed = split_parameters(template.parameters)
    sampled = {name: int(r["min"]) for name, r in ranges.items()}
    computed = resolve_values(template, sampled, fixed)
    used = find_placeholders(template.template_text) | find_placeholders(template.solution_template)
    return {
        "answer_resolved": "answer" in computed,
        "unresolved_placeholders": sorted(used - set(computed)),
    }
