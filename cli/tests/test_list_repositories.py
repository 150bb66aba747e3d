from __future__ import annotations

import asyncio

import httpx
import pytest

from ghrepos_client import (
    ClientConfig,
    DeserializationError,
    Failure,
    NetworkError,
    ServerError,
    Success,
    build_client,
)


def _config(tmp_path, **overrides) -> ClientConfig:
    values = {
        "base_url": "https://api.test",
        "cache_dir": str(tmp_path / "cache"),
        "legacy_tls": False,
    }
    values.update(overrides)
    return ClientConfig(**values)


def _list(tmp_path, handler, user: str = "octocat", **overrides):
    async def _run():
        async with build_client(_config(tmp_path, **overrides), transport=httpx.MockTransport(handler)) as client:
            return await client.list_repositories(user)

    return asyncio.run(_run())


def test_names_preserve_order(tmp_path) -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        return httpx.Response(200, json=[{"name": "foo"}, {"name": "bar"}])

    result = _list(tmp_path, handler)

    assert isinstance(result, Success)
    assert result.ok is True
    assert result.names == ["foo", "bar"]
    assert seen == [("GET", "/users/octocat/repos")]


def test_empty_array_is_success(tmp_path) -> None:
    result = _list(tmp_path, lambda request: httpx.Response(200, json=[]))

    assert isinstance(result, Success)
    assert result.repositories == ()


def test_length_matches_input(tmp_path) -> None:
    payload = [{"name": f"repo-{i}", "id": i} for i in range(25)]
    result = _list(tmp_path, lambda request: httpx.Response(200, json=payload))

    assert isinstance(result, Success)
    assert [r.id for r in result.repositories] == list(range(25))


def test_wire_fields_are_mapped(tmp_path) -> None:
    payload = [
        {
            "name": "hello",
            "full_name": "octocat/hello",
            "html_url": "https://github.com/octocat/hello",
            "stargazers_count": 5,
            "fork": True,
            "language": None,
            "owner": {"login": "octocat"},
        }
    ]
    result = _list(tmp_path, lambda request: httpx.Response(200, json=payload))

    repo = result.repositories[0]
    assert repo.full_name == "octocat/hello"
    assert repo.stars == 5
    assert repo.fork is True
    assert repo.language is None


def test_missing_name_fails_the_batch(tmp_path) -> None:
    payload = [{"name": "ok"}, {"id": 2}]
    result = _list(tmp_path, lambda request: httpx.Response(200, json=payload))

    assert isinstance(result, Failure)
    assert isinstance(result.reason, DeserializationError)
    assert "element 1" in str(result.reason)


def test_unparseable_body(tmp_path) -> None:
    result = _list(tmp_path, lambda request: httpx.Response(200, text="<html>oops</html>"))

    assert isinstance(result, Failure)
    assert isinstance(result.reason, DeserializationError)


def test_object_instead_of_array(tmp_path) -> None:
    result = _list(tmp_path, lambda request: httpx.Response(200, json={"name": "solo"}))

    assert isinstance(result, Failure)
    assert isinstance(result.reason, DeserializationError)


def test_not_found_is_server_error(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Not Found"})

    result = _list(tmp_path, handler)

    assert isinstance(result, Failure)
    assert isinstance(result.reason, ServerError)
    assert result.status_code == 404
    assert str(result.reason) == "Not Found"


def test_internal_error_is_server_error(tmp_path) -> None:
    result = _list(tmp_path, lambda request: httpx.Response(500, text="boom"))

    assert isinstance(result.reason, ServerError)
    assert result.reason.status_code == 500
    assert result.reason.details == "boom"


def test_connect_timeout_is_network_error(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    result = _list(tmp_path, handler)

    assert isinstance(result, Failure)
    assert isinstance(result.reason, NetworkError)
    assert result.status_code is None


def test_dns_failure_is_network_error(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)

    result = _list(tmp_path, handler)

    assert isinstance(result.reason, NetworkError)
    assert "Name or service not known" in str(result.reason)


def test_user_is_path_encoded(tmp_path) -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.raw_path)
        return httpx.Response(200, json=[])

    _list(tmp_path, handler, user="a/b")

    assert seen == [b"/users/a%2Fb/repos"]


def test_blank_user_rejected(tmp_path) -> None:
    with pytest.raises(ValueError):
        _list(tmp_path, lambda request: httpx.Response(200, json=[]), user="  ")


def test_enqueue_invokes_callback_once(tmp_path) -> None:
    calls = []

    async def _run():
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[{"name": "foo"}]))
        async with build_client(_config(tmp_path), transport=transport) as client:
            task = client.enqueue("octocat", calls.append)
            await task
            await asyncio.sleep(0)

    asyncio.run(_run())

    assert len(calls) == 1
    assert calls[0].names == ["foo"]


def test_enqueue_reports_failure_through_callback(tmp_path) -> None:
    calls = []

    async def _run():
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        async with build_client(_config(tmp_path), transport=transport) as client:
            await client.enqueue("octocat", calls.append)
            await asyncio.sleep(0)

    asyncio.run(_run())

    assert len(calls) == 1
    assert calls[0].status_code == 503


def test_cancelled_enqueue_skips_callback(tmp_path) -> None:
    calls = []

    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(10)
        return httpx.Response(200, json=[])

    async def _run():
        async with build_client(_config(tmp_path), transport=httpx.MockTransport(handler)) as client:
            task = client.enqueue("octocat", calls.append)
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            await asyncio.sleep(0)

    asyncio.run(_run())

    assert calls == []


def test_cached_configuration_can_be_selected(tmp_path) -> None:
    async def _run():
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json=[{"name": "foo"}], headers={"Cache-Control": "max-age=60"})
        )
        async with build_client(_config(tmp_path), configuration="cached", transport=transport) as client:
            first = await client.list_repositories("octocat")
            second = await client.list_repositories("octocat")
        return first, second

    first, second = asyncio.run(_run())

    assert first.names == second.names == ["foo"]


def test_unknown_configuration_rejected(tmp_path) -> None:
    with pytest.raises(ValueError):
        build_client(_config(tmp_path), configuration="bogus")


def test_deeply_nested_body_is_deserialization_error(tmp_path) -> None:
    body = "[" * 200000 + "]" * 200000
    result = _list(tmp_path, lambda request: httpx.Response(200, text=body))

    assert isinstance(result, Failure)
    assert isinstance(result.reason, DeserializationError)


def test_deeply_nested_body_still_notifies_callback(tmp_path) -> None:
    calls = []
    body = "[" * 200000 + "]" * 200000

    async def _run():
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=body))
        async with build_client(_config(tmp_path), transport=transport) as client:
            await client.enqueue("octocat", calls.append)
            await asyncio.sleep(0)

    asyncio.run(_run())

    assert len(calls) == 1
    assert isinstance(calls[0].reason, DeserializationError)


def test_corrupt_gzip_body_is_deserialization_error(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"Content-Encoding": "gzip", "Content-Type": "application/json"},
            stream=httpx.ByteStream(b"definitely not gzip"),
        )

    result = _list(tmp_path, handler)

    assert isinstance(result, Failure)
    assert isinstance(result.reason, DeserializationError)


def test_enqueue_rejects_blank_user_before_scheduling(tmp_path) -> None:
    calls = []

    async def _run():
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[]))
        async with build_client(_config(tmp_path), transport=transport) as client:
            with pytest.raises(ValueError):
                client.enqueue("   ", calls.append)
            await asyncio.sleep(0)

    asyncio.run(_run())

    assert calls == []
