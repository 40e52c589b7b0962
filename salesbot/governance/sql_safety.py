"""
Deterministic SQL allow-list checks (non-LLM).

These checks are the final gate before any SQL is executed against Postgres.
Both translators are untrusted producers: LLM output obviously, but the
heuristic templates go through the same gate.

Checks performed:
  1. SQL must be a single SELECT statement (WITH … SELECT allowed)
  2. No SELECT *
  3. No dangerous keywords (DROP, ALTER, TRUNCATE, INSERT, UPDATE, DELETE, GRANT …)
  4. No SQL comments
  5. Only the catalog table (or CTEs defined in the statement) in every FROM item / JOIN
  6. Only known columns, aliases (after their definition), SQL keywords and functions as identifiers
  7. Literal category / country filters must use enumerated values
  8. LIMIT, when present, must be ≤ max_rows
"""
from __future__ import annotations

import re

from salesbot.governance.schema_loader import load_schema, SalesSchema
from salesbot.core.logging import get_logger

logger = get_logger(__name__)

# ── Compiled patterns ────────────────────────────────────

_DANGEROUS_KW = re.compile(
    r"\b(DROP|ALTER|TRUNCATE|INSERT|UPDATE|DELETE|MERGE|GRANT|REVOKE|"
    r"CREATE|REPLACE|EXECUTE|EXEC|CALL|COPY|SET\s+ROLE|RESET\s+ROLE|"
    r"PG_SLEEP|PG_READ_FILE|DBLINK)\b",
    re.IGNORECASE,
)

_MULTI_STMT = re.compile(r";\s*\S")  # semicolon followed by non-whitespace

_COMMENT_INLINE = re.compile(r"--")
_COMMENT_BLOCK = re.compile(r"/\*")

_SELECT_STAR = re.compile(r"\bSELECT\s+(?:DISTINCT\s+)?\*", re.IGNORECASE)

_LIMIT_RE = re.compile(r"\bLIMIT\s+(\d+)", re.IGNORECASE)

_FROM_KW_RE = re.compile(r"\bFROM\b", re.IGNORECASE)
_JOIN_RE = re.compile(
    r"\bJOIN\s+([\w]+\.[\w]+|[\w]+)(?:\s+(?:AS\s+)?([A-Za-z_][A-Za-z0-9_]*))?",
    re.IGNORECASE,
)
# Words that end a FROM list at paren depth 0
_FROM_END_RE = re.compile(
    r"\b(?:WHERE|GROUP|ORDER|HAVING|LIMIT|OFFSET|UNION|INTERSECT|EXCEPT|WINDOW|"
    r"FETCH|FOR|JOIN|INNER|LEFT|RIGHT|FULL|CROSS|NATURAL|ON|USING)\b",
    re.IGNORECASE,
)
_REL_ITEM_RE = re.compile(
    r"^([A-Za-z_]\w*(?:\.[A-Za-z_]\w*)?)(?:\s+(?:AS\s+)?([A-Za-z_]\w*))?$",
    re.IGNORECASE,
)
_SUB_ITEM_RE = re.compile(r"^\(.*\)\s*(?:AS\s+)?([A-Za-z_]\w*)?$", re.IGNORECASE | re.DOTALL)
_LEAD_IDENT_RE = re.compile(r"^([A-Za-z_][\w.]*)")

_STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")
_IDENTIFIER = re.compile(r"\b[A-Za-z_][A-Za-z0-9_]*\b")
# ``AS name`` not followed by ``)``; ``CAST(x AS type)`` names a type, not an alias
_ALIAS_RE = re.compile(r"\bAS\s+([A-Za-z_][A-Za-z0-9_]*)\b(?!\s*\))", re.IGNORECASE)
_CTE_RE = re.compile(r"(?:\bWITH|,)\s*([A-Za-z_][A-Za-z0-9_]*)\s+AS\s*\(", re.IGNORECASE)

_EQ_FILTER_RE = re.compile(r"\b(\w+)\s*=\s*'((?:[^']|'')*)'", re.IGNORECASE)
_IN_FILTER_RE = re.compile(r"\b(\w+)\s+IN\s*\(([^)]*)\)", re.IGNORECASE)

_SQL_KEYWORDS = frozenset("""
select from where and or not in is null group by order asc desc limit offset
having as distinct on join inner left right outer full cross using between
like ilike case when then else end with union all any exists nulls first last
true false filter over partition rows range unbounded preceding following
current row interval
""".split())

_SQL_FUNCTIONS = frozenset("""
sum avg count min max round abs ceil ceiling floor coalesce nullif cast
extract date_trunc date_part to_char to_date now current_date current_timestamp
lower upper trim length substring concat greatest least
rank dense_rank row_number percent_rank ntile lag lead stddev variance
""".split())

_SQL_TYPES_AND_FIELDS = frozenset("""
numeric integer int bigint decimal real float double precision text varchar
char date timestamp
year quarter month week day dow doy hour minute second epoch
""".split())

# Read without parentheses, so an alias of the same name would hide them
_SESSION_NAMES = frozenset("""
current_user session_user current_role user current_catalog current_schema
""".split())


def _strip_literals(sql: str) -> str:
    return _STRING_LITERAL.sub("''", sql)


def _literal_values(raw: str) -> list[str]:
    return [m.group(0)[1:-1].replace("''", "'") for m in _STRING_LITERAL.finditer(raw)]


def _from_list(code: str, start: int) -> list[str]:
    """Top-level comma-separated items of the FROM list beginning at *start*."""
    items: list[str] = []
    depth = 0
    begin = i = start
    while i < len(code):
        ch = code[i]
        if ch == "(":
            depth += 1
        elif ch == ")":
            if depth == 0:
                break
            depth -= 1
        elif depth == 0:
            if ch == ",":
                items.append(code[begin:i])
                begin = i + 1
            elif ch == ";" or _FROM_END_RE.match(code, i):
                break
        i += 1
    items.append(code[begin:i])
    return [item.strip() for item in items if item.strip()]


def _parse_from_item(item: str) -> tuple[str | None, str | None]:
    """(relation, alias) of one FROM item; relation is None for a subquery."""
    m = _REL_ITEM_RE.match(item)
    if m:
        return m.group(1), m.group(2)
    m = _SUB_ITEM_RE.match(item)
    if m:
        return None, m.group(1)
    m = _LEAD_IDENT_RE.match(item)
    return (m.group(1) if m else None), None


def check_sql_safety(
    sql: str,
    schema: SalesSchema | None = None,
) -> list[str]:
    """Return a list of allow-list violations (empty list = safe).

    Parameters
    ----------
    sql : str
        The SQL query to validate.
    schema : SalesSchema, optional
        If None, auto-loads the catalog from disk.
    """
    if schema is None:
        schema = load_schema()

    errors: list[str] = []
    sql_stripped = sql.strip()
    if sql_stripped.endswith(";"):
        sql_stripped = sql_stripped[:-1].rstrip()

    if not sql_stripped:
        return ["SQL is empty."]

    # ── 1. Must start with SELECT (or WITH … SELECT for CTEs) ─────
    upper = sql_stripped.upper()
    if not (upper.startswith("SELECT") or upper.startswith("WITH")):
        errors.append("SQL must be a SELECT statement.")

    if _MULTI_STMT.search(_strip_literals(sql_stripped)):
        errors.append("Multi-statement SQL is not allowed (found ';' followed by another statement).")

    code = _strip_literals(sql_stripped)

    # ── 2. No SELECT * ───────────────────────────────
    if _SELECT_STAR.search(code):
        errors.append("SELECT * is not allowed. Specify explicit columns.")

    # ── 3. No dangerous keywords ─────────────────────
    m = _DANGEROUS_KW.search(code)
    if m:
        errors.append(f"Dangerous keyword detected: '{m.group(1).upper()}'.")

    # ── 4. No SQL comments (injection vector) ────────
    if _COMMENT_INLINE.search(code):
        errors.append("Inline comments (--) are not allowed.")
    if _COMMENT_BLOCK.search(code):
        errors.append("Block comments (/* */) are not allowed.")

    # ── 5. Allowed tables only ───────────────────────
    scan = code.replace('"', " ")
    columns = {c.lower() for c in schema.column_names()}
    ctes = {name.lower() for name in _CTE_RE.findall(scan)}
    allowed_tables = {schema.table.lower(), f"public.{schema.table.lower()}"} | ctes

    relations: list[tuple[str | None, str | None]] = []
    for m in _FROM_KW_RE.finditer(scan):
        relations.extend(_parse_from_item(item) for item in _from_list(scan, m.end()))
    relations.extend((m.group(1), m.group(2)) for m in _JOIN_RE.finditer(scan))

    table_aliases: set[str] = set()
    for ref, alias in relations:
        ref_lower = ref.lower() if ref else None
        # EXTRACT(YEAR FROM sale_date) reads a column, not a table
        if ref_lower in columns:
            continue
        if ref_lower is not None and ref_lower not in allowed_tables:
            errors.append(f"Table '{ref}' is not in the allowed tables list.")
            continue
        if alias:
            table_aliases.add(alias.lower())

    # ── 6. Known identifiers only ────────────────────
    # A column alias is only known after its definition; the defining
    # token itself is not checked.
    alias_defined_at: dict[str, int] = {}
    definitions: set[int] = set()
    for m in _ALIAS_RE.finditer(scan):
        alias_defined_at.setdefault(m.group(1).lower(), m.end(1))
        definitions.add(m.start(1))
        if m.group(1).lower() in _SESSION_NAMES:
            errors.append(f"Alias '{m.group(1)}' shadows a session value.")

    known = (
        _SQL_KEYWORDS | _SQL_FUNCTIONS | _SQL_TYPES_AND_FIELDS
        | columns | table_aliases | ctes | {schema.table.lower(), "public"}
    )
    callable_names = _SQL_KEYWORDS | _SQL_FUNCTIONS | _SQL_TYPES_AND_FIELDS
    unknown: list[str] = []
    for m in _IDENTIFIER.finditer(scan):
        if m.start() in definitions:
            continue
        low = m.group(0).lower()
        if scan[m.end():].lstrip().startswith("("):
            ok = low in callable_names
        elif scan[:m.start()].endswith("."):
            # t.rev: a column of a checked relation or subquery
            ok = low in known or low in alias_defined_at
        else:
            ok = low in known or m.start() >= alias_defined_at.get(low, len(scan))
        if not ok and low not in unknown:
            unknown.append(low)
    if unknown:
        errors.append(f"Unknown identifier(s): {', '.join(unknown)}.")

    # ── 7. Enumerated filter values ──────────────────
    for col, raw in _EQ_FILTER_RE.findall(sql_stripped):
        allowed = schema.allowed_values(col.lower())
        value = raw.replace("''", "'")
        if allowed is not None and value not in allowed:
            errors.append(f"Unknown {col.lower()} value '{value}'.")
    for col, raw in _IN_FILTER_RE.findall(sql_stripped):
        allowed = schema.allowed_values(col.lower())
        if allowed is None:
            continue
        for value in _literal_values(raw):
            if value not in allowed:
                errors.append(f"Unknown {col.lower()} value '{value}'.")

    # ── 8. LIMIT ≤ max_rows ──────────────────────────
    for limit_match in _LIMIT_RE.finditer(code):
        limit_val = int(limit_match.group(1))
        if limit_val > schema.security.max_rows:
            errors.append(
                f"LIMIT {limit_val} exceeds maximum allowed ({schema.security.max_rows})."
            )

    if errors:
        logger.warning("SQL safety violations: %s", errors)
    return errors
