import json

from django.core.serializers.json import DjangoJSONEncoder


def row_image(instance) -> dict:
    """JSON-compatible image of a model row, keyed by column name."""
    data = {field.attname: field.value_from_object(instance) for field in instance._meta.concrete_fields}
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


def table_name(model) -> str:
    return model._meta.db_table
