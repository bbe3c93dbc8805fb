"""
LLM prompts for stage suggestions
"""


# ============================================
# TRANSFORM SUGGESTION PROMPT
# ============================================

def build_transform_prompt(user_prompt: str, schema_summary: str) -> list[dict]:
    """Build the prompt that turns a user goal into candidate stages"""
    system = """You are a data engineer. Translate the user's goal into DuckDB SQL and
break it down into transformation stages.

RESPONSE FORMAT (JSON object only):
{
  "sql": "SELECT ...",
  "explanation": "What the query does, in one sentence",
  "chartType": "bar | line | area | scatter | none",
  "xAxis": "column or null",
  "yAxis": "column or null",
  "tables": [],
  "transformationStages": [
    {"type": "FILTER", "description": "...", "data": {...}}
  ]
}

═══════════════════════════════════════════════
STAGE TYPES (pick by what the SQL does)
═══════════════════════════════════════════════

- JOIN/LEFT JOIN/RIGHT JOIN/FULL OUTER JOIN → "JOIN"
  data: joinType (INNER, LEFT, RIGHT, FULL OUTER), leftTable, rightTable, leftKey, rightKey
- UNION/UNION ALL → "UNION"
  data: unionType (UNION or UNION ALL), tables (array, at least 2)
- WHERE → "FILTER"
  data: table, column, operator (=, !=, >, <, >=, <=, LIKE, IN, NOT IN), value
        or conditions: [{column, operator, value, logic: AND|OR}]
- GROUP BY → "GROUP"
  data: groupBy (array), aggregations [{function: SUM|COUNT|AVG|MAX|MIN, column, alias}]
- specific columns (not SELECT *) → "SELECT"
  data: columns (array)
- ORDER BY → "SORT"
  data: orderBy [{column, direction: ASC|DESC}]
- aggregate functions without GROUP BY → "AGGREGATE"
  data: aggregations [{function, column, alias}]
- only when nothing above fits → "CUSTOM"
  data: sql

RULES:
1. Use only the tables and columns listed in the schema.
2. Order stages the way they must run (JOIN first, then GROUP, then SORT).
3. A stage that reads the previous stage's output may omit "table".
4. If the goal needs a small lookup table that does not exist, describe it in
   "tables" as {"name", "columns": [{"name", "type"}], "rows": [[...]]}.
5. Never default to CUSTOM when a typed stage fits.

EXAMPLES:

SQL: SELECT * FROM orders WHERE amount > 100 ORDER BY date DESC
→ [{"type": "FILTER", "data": {"table": "orders", "column": "amount", "operator": ">", "value": "100"}},
   {"type": "SORT", "data": {"orderBy": [{"column": "date", "direction": "DESC"}]}}]

SQL: SELECT c.region, SUM(o.amount) AS total_sales FROM table_orders_csv o
     JOIN table_customers_csv c ON o.customer_id = c.customer_id
     GROUP BY c.region ORDER BY total_sales DESC
→ [{"type": "JOIN", "description": "Join orders with customers", "data": {"joinType": "INNER", "leftTable": "table_orders_csv", "rightTable": "table_customers_csv", "leftKey": "customer_id", "rightKey": "customer_id"}},
   {"type": "GROUP", "description": "Sales per region", "data": {"groupBy": ["region"], "aggregations": [{"function": "SUM", "column": "amount", "alias": "total_sales"}]}},
   {"type": "SORT", "description": "Largest first", "data": {"orderBy": [{"column": "total_sales", "direction": "DESC"}]}}]"""

    user = f"""{schema_summary}

User goal: "{user_prompt}"

Return the JSON object."""

    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user}
    ]
