import pytest


def test_lazy_imports_and_caching():
    import shipit  # triggers shipit.__getattr__

    # First access loads and caches
    workflow_cls = shipit.ShipitWorkflow
    from shipit.core import ShipitWorkflow as RealWorkflow

    assert workflow_cls is RealWorkflow
    assert "ShipitWorkflow" in vars(shipit)
    # Second access should use cached value
    assert shipit.ShipitWorkflow is RealWorkflow


def test_every_public_name_resolves():
    import shipit

    for name in shipit.__all__:
        assert getattr(shipit, name) is not None


def test_unknown_attribute_raises():
    import shipit

    with pytest.raises(AttributeError):
        getattr(shipit, "TotallyUnknownSymbol")
