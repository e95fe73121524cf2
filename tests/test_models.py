import pytest

from app.core.db import Base


def _relationships():
    for mapper in Base.registry.mappers:
        for rel in mapper.relationships:
            yield f"{mapper.class_.__name__}.{rel.key}", rel


@pytest.mark.parametrize("name, rel", list(_relationships()))
def test_relationships_use_supported_loader(name, rel):
    assert rel.lazy != "noload", name


def test_back_references_refuse_implicit_io():
    back_refs = {name: rel.lazy for name, rel in _relationships() if rel.lazy == "raise_on_sql"}
    assert "RfqItem.purchase_request" in back_refs
    assert "DeliveryLineItem.delivery" in back_refs
