from __future__ import annotations

import pytest

from api_quest.core.models import Request, Response
from api_quest.verification import (
    REQUIRED,
    DescriptorError,
    ExpectedResponseDescriptor,
    Literal,
    SolutionDescriptor,
    check_request,
    check_response,
    check_source_restriction,
    explain_request,
    explain_response,
    path_exists,
    resolve_path,
    values_equal,
)


def test_descriptor_parsing_tags_sentinels():
    solution = SolutionDescriptor.from_mapping(
        {
            "method": "POST",
            "url": "/api/users",
            "headers": {"Content-Type": "application/json", "Authorization": True, "X-Trace": ""},
            "body": {"name": True, "role": "admin"},
        }
    )

    assert solution.headers["Authorization"] is REQUIRED
    assert solution.headers["X-Trace"] is REQUIRED
    assert solution.headers["Content-Type"] == Literal("application/json")
    assert solution.body == {"name": REQUIRED, "role": Literal("admin")}
    assert not solution.is_multi_step


def test_descriptor_steps_are_parsed_but_not_nested():
    solution = SolutionDescriptor.from_mapping({"steps": [{"method": "GET", "url": "/a"}, {"method": "POST", "url": "/b"}]})

    assert solution.is_multi_step
    assert [step.url for step in solution.steps] == ["/a", "/b"]
    with pytest.raises(DescriptorError):
        SolutionDescriptor.from_mapping({"steps": [{"steps": []}]})


@pytest.mark.parametrize(
    "payload",
    [
        ["not", "a", "mapping"],
        {"method": 42},
        {"headers": ["Authorization"]},
        {"steps": "first"},
    ],
)
def test_malformed_solution_descriptor(payload):
    with pytest.raises(DescriptorError):
        SolutionDescriptor.from_mapping(payload)


def test_malformed_expected_descriptor():
    with pytest.raises(DescriptorError):
        ExpectedResponseDescriptor.from_mapping({"status": "200"})
    with pytest.raises(DescriptorError):
        ExpectedResponseDescriptor.from_mapping({"headers": "json"})


def test_request_body_field_boundaries():
    descriptor = {"method": "POST", "body": {"role": True}}

    assert check_request(descriptor, Request(method="POST", url="/api/users", body={"name": "Ann"})) is False
    assert check_request(descriptor, Request(method="POST", url="/api/users", body={"role": "admin"})) is True
    assert check_request({"method": "POST", "body": {"role": "admin"}}, Request(method="POST", url="/x", body={"role": "user"})) is False


def test_request_required_field_accepts_null():
    assert check_request({"method": "PUT", "body": {"role": True}}, Request(method="PUT", url="/x", body={"role": None})) is True


def test_request_body_ignored_for_non_body_methods():
    assert check_request({"method": "GET", "body": {"role": True}}, Request(method="GET", url="/x")) is True


def test_request_body_not_an_object_fails_required_fields():
    assert check_request({"method": "POST", "body": {"role": True}}, Request(method="POST", url="/x", body="role=admin")) is False


def test_request_method_and_url_exact():
    request = Request(method="GET", url="/api/users?role=admin")

    assert check_request({"method": "GET", "url": "/api/users?role=admin"}, request) is True
    assert check_request({"method": "get"}, request) is False
    assert check_request({"url": "/api/users"}, request) is False


def test_request_headers_present_and_literal():
    request = Request(method="GET", url="/x", headers={"Authorization": "Bearer abc", "X-Empty": ""})

    assert check_request({"headers": {"Authorization": True}}, request) is True
    assert check_request({"headers": {"Authorization": "Bearer abc"}}, request) is True
    assert check_request({"headers": {"Authorization": "Bearer xyz"}}, request) is False
    assert check_request({"headers": {"X-Empty": True}}, request) is False
    assert check_request({"headers": {"X-Missing": True}}, request) is False


def test_explain_request_lists_every_mismatch():
    report = explain_request(
        {"method": "POST", "url": "/api/users", "body": {"name": True, "role": "admin"}},
        Request(method="GET", url="/api/users"),
    )

    assert not report
    assert [mismatch.check for mismatch in report.mismatches] == ["method"]
    report = explain_request(
        {"method": "POST", "body": {"name": True, "role": "admin"}},
        Request(method="POST", url="/api/users", body={"role": "user"}),
    )
    assert [(mismatch.check, mismatch.field) for mismatch in report.mismatches] == [("body", "name"), ("body", "role")]
    assert any("name" in line for line in report.describe())


def test_values_equal_is_strict():
    assert values_equal(1, 1.0)
    assert not values_equal(True, 1)
    assert not values_equal(0, False)
    assert not values_equal("1", 1)
    assert values_equal({"a": [1, 2]}, {"a": [1, 2]})


def test_dotted_path_resolution():
    body = {"user": {"name": "Ann"}, "0": {"id": 7}, "[1]": "literal"}

    assert resolve_path(body, "user.name") == "Ann"
    assert resolve_path(body, "[0].id") == 7
    assert resolve_path(body, "[1]") == "literal"
    assert resolve_path([{"id": 3}], "[0].id") == 3
    assert resolve_path([{"id": 3}], "0.id") == 3
    assert not path_exists(body, "user.address.city")
    assert not path_exists(body, "user.name.first")
    assert not path_exists([{"id": 3}], "[5].id")
    assert not path_exists(None, "anything")


def test_dotted_path_response_check():
    response = Response(status=200, body={"user": {"name": "Ann"}, 0: {"id": 7}})

    assert check_response({"body": {"[0].id": True, "user.name": "Ann"}}, response) is True
    assert check_response({"body": {"user.email": True}}, response) is False
    assert check_response({"body": {"profile.name": "Ann"}}, response) is False


def test_response_status_and_headers():
    response = Response(status=201, headers={"Content-Type": "application/json", "Location": "/api/users/4"}, body={"id": 4})

    assert check_response({"status": 201, "headers": {"Location": "/api/users/4"}}, response) is True
    assert check_response({"status": 200}, response) is False
    assert check_response({"headers": {"Location": "/api/users/5"}}, response) is False
    assert check_response({"headers": {"ETag": "abc"}}, response) is False


def test_response_exact_match():
    response = Response(status=200, body={"a": 1, "b": [1, 2]})

    assert check_response({"body": {"a": 1, "b": [1, 2]}, "exactMatch": True}, response) is True
    assert check_response({"body": {"a": 1}, "exactMatch": True}, response) is False
    assert check_response({"body": {"a": 1}}, response) is True


def test_exact_match_against_empty_body():
    assert check_response({"body": [], "exactMatch": True}, Response(status=200, body=[1, 2, 3])) is False
    assert check_response({"body": {}, "exactMatch": True}, Response(status=200, body={"a": 1})) is False
    assert check_response({"body": [], "exactMatch": True}, Response(status=200, body=[])) is True
    assert check_response({"body": {}}, Response(status=200, body={"a": 1})) is True


def test_response_without_descriptor_passes():
    assert check_response(None, Response(status=500)) is True
    assert explain_response(None, Response(status=204)).passed


def test_response_required_field_and_literal_types():
    response = Response(status=200, body={"active": True, "count": 1, "note": None})

    assert check_response({"body": {"note": True}}, response) is True
    assert check_response({"body": {"count": True}}, response) is True
    assert check_response({"body": {"active": 1}}, response) is False
    assert check_response({"body": {"count": 1}}, response) is True


def test_checks_accept_parsed_descriptors():
    solution = SolutionDescriptor.from_mapping({"method": "GET", "url": "/api/users"})
    expected = ExpectedResponseDescriptor.from_mapping({"status": 200})

    assert check_request(solution, Request(method="GET", url="/api/users"))
    assert check_response(expected, Response(status=200))


def test_source_restriction():
    assert check_source_restriction((), "mock")
    assert check_source_restriction(["public", "training"], "training")
    assert not check_source_restriction(["public"], "mock")
