from flask import current_app, has_app_context
from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, pre_load, validate, validates


def _default_per_page():
    if has_app_context():
        return current_app.config.get("ORM_DEFAULT_PER_PAGE", 20)
    return 20


class PageQuerySchema(Schema):
    """Loads ``page``, ``per_page`` and ``sort`` from request arguments."""

    class Meta:
        unknown = EXCLUDE

    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    per_page = fields.Integer(load_default=None, validate=validate.Range(min=1))
    sort = fields.List(fields.String(), load_default=list)
    order = fields.String(load_default=None, validate=validate.OneOf(["asc", "desc"]))

    @pre_load
    def split_sort(self, data, **kwargs):
        # "?sort=name,-position" as well as repeated "?sort=" arguments
        if hasattr(data, "getlist"):
            data = {key: data.getlist(key) if key == "sort" else data.get(key) for key in data.keys()}
        else:
            data = dict(data)

        raw = data.get("sort")
        if isinstance(raw, str):
            raw = [raw]
        if raw:
            data["sort"] = [part.strip() for item in raw for part in item.split(",") if part.strip()]

        if isinstance(data.get("order"), str):
            data["order"] = data["order"].strip().lower()
        return data

    @validates("per_page")
    def validate_per_page(self, value, **kwargs):
        if value is None or not has_app_context():
            return
        max_per_page = current_app.config.get("ORM_MAX_PER_PAGE")
        if max_per_page is not None and value > max_per_page:
            raise ValidationError(f"Must be at most {max_per_page}.")

    @post_load
    def build_sort(self, data, **kwargs):
        """Turn ``-field`` entries into a ``{field: "desc"}`` mapping for ``add_order``."""
        if data.get("per_page") is None:
            data["per_page"] = _default_per_page()

        default_order = (data.pop("order", None) or "asc").lower()
        ordering = {}
        for name in data.get("sort") or []:
            if name.startswith("-"):
                ordering[name[1:]] = "desc"
            else:
                ordering[name] = default_order
        data["sort"] = ordering
        return data


class PaginationSchema(Schema):
    """Dumps the paging metadata of a pager created by ``create_pager``."""

    page = fields.Integer()
    per_page = fields.Integer()
    total = fields.Integer(allow_none=True)
    pages = fields.Integer()
    has_next = fields.Boolean()
    has_prev = fields.Boolean()
    next_num = fields.Integer(allow_none=True)
    prev_num = fields.Integer(allow_none=True)
    count = fields.Method("get_count")

    def get_count(self, pager):
        return len(pager.items)
