import pytest
from pydantic import ValidationError

from tools.schemas import CpeLookupArgs, CvesByProductArgs, ShodanSearchArgs


def test_limit_range_is_zero_to_one_thousand():
    assert CpeLookupArgs(product="nginx", limit=0).limit == 0
    assert CvesByProductArgs(product="nginx", limit=0).limit == 0

    with pytest.raises(ValidationError):
        CpeLookupArgs(product="nginx", limit=1001)
    with pytest.raises(ValidationError):
        CvesByProductArgs(product="nginx", limit=-1)


def test_advertised_limit_bounds_match_validation():
    for model in (CpeLookupArgs, CvesByProductArgs):
        limit = model.model_json_schema()["properties"]["limit"]
        assert limit["minimum"] == 0
        assert limit["maximum"] == 1000


def test_query_and_product_strings_are_passed_through_unchecked():
    assert ShodanSearchArgs(query="").query == ""
    assert CpeLookupArgs(product="").product == ""


def test_max_results_still_requires_at_least_one():
    with pytest.raises(ValidationError):
        ShodanSearchArgs(query="nginx", max_results=0)


def test_upstream_params_drop_override_and_unset_dates():
    args = CvesByProductArgs(product="log4j", break_token_rule=True)

    assert args.upstream_params() == {
        "product": "log4j",
        "count": False,
        "is_kev": False,
        "sort_by_epss": False,
        "skip": 0,
        "limit": 1000,
    }
