"""Reserved words and the clause tables the structural rules work from."""

from __future__ import annotations


RESERVED_KEYWORDS = frozenset(
    """
    ABS ALL ALTER AND ANY ARRAY AS ASC ASYMMETRIC AT AUTHORIZATION AVG
    BEGIN BETWEEN BIGINT BINARY BLOB BOOLEAN BOTH BY
    CALL CASCADE CASE CAST CHAR CHARACTER CHECK CLOB CLOSE COALESCE COLLATE
    COLUMN COMMIT CONSTRAINT CONTINUE CONVERT COUNT CREATE CROSS CUBE CURRENT
    CURRENT_DATE CURRENT_TIME CURRENT_TIMESTAMP CURRENT_USER CURSOR
    DATABASE DATE DEALLOCATE DEC DECIMAL DECLARE DEFAULT DELETE DESC DESCRIBE
    DISTINCT DOUBLE DROP
    ELSE END ESCAPE EXCEPT EXEC EXECUTE EXISTS EXPLAIN EXTERNAL EXTRACT
    FALSE FETCH FILTER FIRST FLOAT FOR FOREIGN FROM FULL FUNCTION
    GLOBAL GRANT GROUP GROUPING
    HAVING
    IF ILIKE IN INDEX INNER INOUT INSERT INT INTEGER INTERSECT INTERVAL INTO IS
    JOIN
    KEY
    LAST LATERAL LEADING LEFT LIKE LIMIT LOCAL LOWER
    MATCH MAX MERGE MIN
    NATIONAL NATURAL NCHAR NO NOT NULL NULLIF NUMERIC
    OF OFFSET ON ONLY OPEN OR ORDER OUT OUTER OVER OVERLAPS
    PARTITION PRECISION PRIMARY PROCEDURE
    QUALIFY
    RANGE REAL RECURSIVE REFERENCES RELEASE RETURN RETURNING RETURNS REVOKE RIGHT
    ROLLBACK ROLLUP ROW ROWS
    SAVEPOINT SELECT SET SIMILAR SMALLINT SOME START SUM SYMMETRIC
    TABLE TABLESAMPLE THEN TIME TIMESTAMP TO TRAILING TRANSACTION TRIGGER TRIM TRUE
    TRUNCATE
    UNION UNIQUE UNKNOWN UPDATE UPPER USING
    VALUES VARCHAR VARYING VIEW
    WHEN WHERE WINDOW WITH WITHIN WITHOUT
    """.split()
)

# Clause keywords as word sequences. The first word is the one checked for
# indentation; longer phrases are matched before shorter ones.
TOP_LEVEL_CLAUSES: tuple[tuple[str, ...], ...] = (
    ("SELECT",),
    ("FROM",),
    ("WHERE",),
    ("GROUP", "BY"),
    ("HAVING",),
    ("ORDER", "BY"),
    ("LIMIT",),
)

# Every keyword phrase that opens a clause, used to track which clause a
# token belongs to.
CLAUSE_STARTERS: tuple[tuple[str, ...], ...] = (
    ("INSERT", "INTO"),
    ("DELETE", "FROM"),
    ("GROUP", "BY"),
    ("ORDER", "BY"),
    ("PARTITION", "BY"),
    ("UNION", "ALL"),
    ("SELECT",),
    ("FROM",),
    ("WHERE",),
    ("HAVING",),
    ("LIMIT",),
    ("OFFSET",),
    ("UPDATE",),
    ("SET",),
    ("VALUES",),
    ("WITH",),
    ("UNION",),
    ("INTERSECT",),
    ("EXCEPT",),
)

# dependent keyword -> keywords that govern it
DEPENDENT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "ON": ("JOIN",),
    "AND": ("WHERE", "HAVING"),
    "OR": ("WHERE", "HAVING"),
    "SET": ("UPDATE",),
}


def is_reserved(word: str) -> bool:
    return word.upper() in RESERVED_KEYWORDS


def parse_clause(text: str) -> tuple[str, ...]:
    """'group  by' -> ('GROUP', 'BY')"""
    return tuple(w.upper() for w in text.split())
