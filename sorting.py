import re
from collections import namedtuple

from sqlalchemy import func, inspect

from models import Photo, Setting

Sorting = namedtuple("Sorting", ["column", "order"])

ALBUM_SORT_COLUMNS = ("id", "created_at", "title", "description", "public")
PHOTO_SORT_COLUMNS = ("id", "taken_at", "created_at", "title", "description", "type", "is_public", "is_starred")
NATURAL_SORT_COLUMNS = ("title", "description")

_DIGITS = re.compile(r"(\d+)")


def natural_key(value):
    """Case-insensitive key that orders embedded numbers by value."""
    parts = _DIGITS.split((value or "").casefold())
    # split() alternates text and digit runs, starting with text, so the
    # tuples of two keys always compare str with str and int with int.
    return tuple(int(p) if i % 2 else p for i, p in enumerate(parts))


def _normalize(column, order, allowed, default):
    if column not in allowed:
        column = default.column
    order = (order or "").upper()
    if order not in ("ASC", "DESC"):
        order = default.order
    return Sorting(column, order)


def album_sorting():
    return _normalize(
        Setting.get_value("sorting_Albums_col"),
        Setting.get_value("sorting_Albums_order"),
        ALBUM_SORT_COLUMNS,
        Sorting("created_at", "ASC"),
    )


def photo_sorting():
    return _normalize(
        Setting.get_value("sorting_Photos_col"),
        Setting.get_value("sorting_Photos_order"),
        PHOTO_SORT_COLUMNS,
        Sorting("created_at", "DESC"),
    )


def sql_order_clause(model, sorting):
    """ORDER BY term for `sorting`, usable inside subqueries.

    Text columns fall back to a case-insensitive SQL ordering here since
    natural ordering is not available in every engine.
    """
    col = getattr(model, sorting.column)
    if sorting.column in NATURAL_SORT_COLUMNS:
        col = func.lower(col)
    return col.desc() if sorting.order == "DESC" else col.asc()


class SortingDecorator:
    """Wraps a query and applies orderings on `all()`.

    Plain columns are ordered by the database.  As soon as one ordering
    needs natural order the rows are fetched by id and every ordering is
    applied in Python as a sequence of stable sorts.
    """

    def __init__(self, query, model):
        self.query = query
        self.model = model
        self.orderings = []

    def order_by(self, column, order="ASC"):
        order = order.upper()
        if order not in ("ASC", "DESC"):
            raise ValueError(f"Invalid sort order: {order}")
        if column not in inspect(self.model).columns:
            raise ValueError(f"Invalid sort column: {column}")
        self.orderings.append(Sorting(column, order))
        return self

    def all(self):
        natural = any(s.column in NATURAL_SORT_COLUMNS for s in self.orderings)
        if not natural:
            query = self.query
            for s in self.orderings:
                col = getattr(self.model, s.column)
                query = query.order_by(col.desc() if s.order == "DESC" else col.asc())
            return query.order_by(self.model.id.asc()).all()

        rows = self.query.order_by(self.model.id.asc()).all()
        for s in reversed(self.orderings):
            if s.column in NATURAL_SORT_COLUMNS:
                key = lambda row, c=s.column: natural_key(getattr(row, c))
            else:
                key = lambda row, c=s.column: _none_first(getattr(row, c))
            rows.sort(key=key, reverse=s.order == "DESC")
        return rows


def _none_first(value):
    return (value is not None, value)


def sort_albums(query, model, sorting=None):
    sorting = sorting or album_sorting()
    return SortingDecorator(query, model).order_by(sorting.column, sorting.order).all()


def sort_photos(query, sorting=None):
    sorting = sorting or photo_sorting()
    return SortingDecorator(query, Photo).order_by(sorting.column, sorting.order).all()
