from .helpers import fmt

TITLE = "Report"


def render(rows):
    for row in rows:
        if row:
            print(fmt(row))
