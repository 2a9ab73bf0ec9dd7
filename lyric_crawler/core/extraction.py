"""
Motor de extração declarativa.

Dois modos de documento compartilham o mesmo formato de regra:
  - html: ``rules.root`` é um seletor CSS que escolhe o elemento repetido;
    cada campo é avaliado dentro do elemento casado. Com
    ``rules.whole_document`` o documento inteiro vira um único registro.
  - json: ``rules.root`` é um caminho "a.b.c" até a lista de entradas;
    cada campo é um caminho relativo à entrada.

Campos cujo valor resolve para ``None`` não entram no registro, e registros
sem nenhum campo são descartados.
"""
from typing import Any, List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag
from soupsieve import SelectorSyntaxError

from .errors import ExtractionError
from .models import (
    ExtractionRules,
    FieldRule,
    ParseMode,
    PathRule,
    PathTransformRule,
    Record,
    SelectorRule,
)

HTML_PARSER = "html.parser"


def get_nested(obj: Any, path: str) -> Any:
    """Navega ``obj`` por um caminho separado por pontos; chave ausente => None."""
    if not path:
        return obj
    result = obj
    for key in path.split("."):
        if isinstance(result, dict) and key in result:
            result = result[key]
        elif isinstance(result, (list, tuple)) and key.isdigit() and int(key) < len(result):
            result = result[int(key)]
        else:
            return None
    return result


def element_text(el: Optional[Tag]) -> Optional[str]:
    if el is None:
        return None
    return el.get_text().strip()


def element_attr(el: Optional[Tag], attribute: str) -> Optional[str]:
    if el is None:
        return None
    value = el.get(attribute)
    if isinstance(value, list):  # ex.: class
        return " ".join(value)
    return value


def coerce_mode(value: Any) -> ParseMode:
    try:
        return ParseMode(value)
    except ValueError as exc:
        raise ExtractionError(f"modo de extração não suportado: {value!r}") from exc


def _select_one(name: str, element: Tag, selector: str) -> Optional[Tag]:
    try:
        return element.select_one(selector)
    except SelectorSyntaxError as exc:
        raise ExtractionError(f"campo '{name}': seletor inválido {selector!r}: {exc}") from exc


def _apply(name: str, transform, *args) -> Any:
    try:
        return transform(*args)
    except Exception as exc:
        raise ExtractionError(f"campo '{name}': transform falhou: {exc}") from exc


def _require_path(name: str, rule: FieldRule) -> str:
    if not getattr(rule, "path", None):
        raise ExtractionError(f"campo '{name}': regra sem 'path'")
    return rule.path


def _html_field(name: str, rule: FieldRule, soup: BeautifulSoup, element: Tag) -> Any:
    if isinstance(rule, SelectorRule):
        target = _select_one(name, element, rule.selector) if rule.selector else element
        if rule.attribute:
            value = element_attr(target, rule.attribute)
        else:
            value = element_text(target)
        if rule.transform is not None:
            value = _apply(name, rule.transform, value, soup, element)
        return value
    if isinstance(rule, PathTransformRule):
        value = element_text(_select_one(name, element, _require_path(name, rule)))
        return _apply(name, rule.transform, value, soup, element)
    if isinstance(rule, PathRule):
        # no modo html o path é um sub-seletor; pega o texto
        return element_text(_select_one(name, element, _require_path(name, rule)))
    raise ExtractionError(f"campo '{name}': regra desconhecida {type(rule).__name__}")


def _json_field(name: str, rule: FieldRule, entry: Any) -> Any:
    if isinstance(rule, PathTransformRule):
        value = get_nested(entry, _require_path(name, rule))
        return _apply(name, rule.transform, value, entry)
    if isinstance(rule, PathRule):
        return get_nested(entry, _require_path(name, rule))
    if isinstance(rule, SelectorRule):
        raise ExtractionError(f"campo '{name}': regra de seletor não se aplica a dados estruturados")
    raise ExtractionError(f"campo '{name}': regra desconhecida {type(rule).__name__}")


def _record(values) -> Optional[Record]:
    record = {key: value for key, value in values if value is not None}
    return record or None


def _roots(soup: BeautifulSoup, rules: ExtractionRules) -> List[Tag]:
    if rules.whole_document:
        return [soup]
    if not rules.root:
        return []
    try:
        return soup.select(rules.root)
    except SelectorSyntaxError as exc:
        raise ExtractionError(f"root inválido {rules.root!r}: {exc}") from exc


def parse_html(html: str, rules: ExtractionRules) -> List[Record]:
    soup = BeautifulSoup(html or "", HTML_PARSER)
    results: List[Record] = []
    for element in _roots(soup, rules):
        record = _record(
            (name, _html_field(name, rule, soup, element)) for name, rule in rules.fields.items()
        )
        if record:
            results.append(record)
    return results


def parse_json(data: Any, rules: ExtractionRules) -> List[Record]:
    entries = get_nested(data, rules.root or "")
    if not isinstance(entries, list):
        return []
    results: List[Record] = []
    for entry in entries:
        record = _record((name, _json_field(name, rule, entry)) for name, rule in rules.fields.items())
        if record:
            results.append(record)
    return results


def extract(raw: Any, rules: ExtractionRules, mode: ParseMode) -> List[Record]:
    if not rules.fields:
        raise ExtractionError("conjunto de regras sem campos")
    mode = coerce_mode(mode)
    if mode == ParseMode.HTML:
        return parse_html(raw, rules)
    if mode == ParseMode.JSON:
        return parse_json(raw, rules)
    raise ExtractionError(f"modo de extração não suportado: {mode}")
