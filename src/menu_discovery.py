"""
Expected versus discovered menu entries.

Solutions and their modules are declared in config.yaml. After a check has
scraped the labels and links visible in the app shell, these helpers work out
which expected modules are missing and which entries nobody asked for, and
turn the result into report rows.

Example config.yaml section:
    solutions:
      Corporate Planning:
        link_prefix: /corporate
        modules:
          - name: Accounting
            panel_name: Accounting
            href: /corporate/accounting
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from config_manager import ConfigError
from report_rows import MenuAxis, Row


_WS_RE = re.compile(r'\s+')


def normalize_label(text: Optional[str]) -> str:
    return _WS_RE.sub(' ', text or '').strip()


def no_access_detail(solution: str) -> str:
    return f'No access / menu not visible for "{solution}" (likely permissions).'


@dataclass(frozen=True)
class ModuleDef:
    """One expected module of a solution."""

    name: str
    panel_name: str = ''
    href: str = ''
    url_pattern: str = ''

    @property
    def side_label(self) -> str:
        return self.panel_name or self.name

    def url_matches(self, url: str) -> bool:
        """
        True when url matches url_pattern (case-insensitive regex), or
        contains href when no pattern is configured.
        """
        if self.url_pattern:
            return re.search(self.url_pattern, url or '', re.IGNORECASE) is not None
        if self.href:
            return self.href.lower() in (url or '').lower()
        return True


@dataclass(frozen=True)
class ModuleComparison:
    missing: List[str] = field(default_factory=list)
    extra: List[str] = field(default_factory=list)
    discovered: List[str] = field(default_factory=list)


def compare_discovered_modules(expected: Iterable[str], discovered: Iterable[str]) -> ModuleComparison:
    """
    Compare expected module labels with labels found in the UI.

    Labels are whitespace-normalized and compared case-insensitively; the
    returned names keep the caller's spelling.
    """
    exp = [normalize_label(x) for x in expected]
    dis = [normalize_label(x) for x in discovered]

    exp_set = {x.lower() for x in exp}
    dis_set = {x.lower() for x in dis}

    return ModuleComparison(
        missing=[x for x in exp if x.lower() not in dis_set],
        extra=[x for x in dis if x.lower() not in exp_set],
        discovered=dis,
    )


def find_unexpected_links(links: Iterable[Tuple[str, str]], expected_hrefs: Iterable[str],
                          prefix: str) -> List[Tuple[str, str]]:
    """
    Unique (name, href) pairs under prefix whose href is not expected.

    Args:
        links: (visible text, href) pairs scraped from the page
        expected_hrefs: hrefs of the configured modules
        prefix: Path prefix owned by the solution, e.g. "/corporate"
    """
    expected = set(expected_hrefs)
    seen = set()
    out = []
    for name, href in links:
        name = normalize_label(name)
        href = (href or '').strip()
        if not name or not href:
            continue
        if not href.startswith(prefix) or href in expected:
            continue
        key = (href, name)
        if key in seen:
            continue
        seen.add(key)
        out.append((name, href))
    return out


def extra_rows(solution: str, links: Iterable[Tuple[str, str]]) -> List[Row]:
    """Side-menu EXTRA rows for unexpected links; the href is kept as detail."""
    return [Row.unexpected(name, detail=href, axis=MenuAxis.SIDE, solution=solution) for name, href in links]


def missing_access_rows(solution: str, modules: Sequence[ModuleDef], detail: str = '') -> List[Row]:
    """
    ERROR rows for every module on both menus when the solution panel cannot be opened.

    Side-menu rows come first, then top-menu rows, each in module order.
    """
    detail = detail or no_access_detail(solution)
    rows = [Row.errored(m.name, detail=detail, axis=MenuAxis.SIDE, solution=solution) for m in modules]
    rows += [Row.errored(m.name, detail=detail, axis=MenuAxis.TOP, solution=solution) for m in modules]
    return rows


def _module_from_config(solution: str, entry: Any) -> ModuleDef:
    if isinstance(entry, str):
        return ModuleDef(name=entry)
    if not isinstance(entry, Mapping) or not entry.get('name'):
        raise ConfigError(f"Solution '{solution}': every module needs a name, got {entry!r}")
    return ModuleDef(
        name=str(entry['name']),
        panel_name=str(entry.get('panel_name') or ''),
        href=str(entry.get('href') or ''),
        url_pattern=str(entry.get('url_pattern') or ''),
    )


def load_solutions(config: Mapping[str, Any]) -> Dict[str, List[ModuleDef]]:
    """
    Module definitions per solution from the 'solutions' config section.

    Raises:
        ConfigError: If a solution or module entry is malformed
    """
    section = (config or {}).get('solutions') or {}
    if not isinstance(section, Mapping):
        raise ConfigError("'solutions' must be a mapping of solution name to settings")

    solutions = {}
    for name, settings in section.items():
        if isinstance(settings, Mapping):
            entries = settings.get('modules') or []
        else:
            entries = settings or []
        if not isinstance(entries, list):
            raise ConfigError(f"Solution '{name}': 'modules' must be a list")
        solutions[str(name)] = [_module_from_config(str(name), entry) for entry in entries]
    return solutions


def solution_link_prefix(config: Mapping[str, Any], solution: str) -> str:
    settings = ((config or {}).get('solutions') or {}).get(solution) or {}
    if isinstance(settings, Mapping):
        return str(settings.get('link_prefix') or '')
    return ''
