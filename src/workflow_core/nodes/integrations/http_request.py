"""HTTP Request node - makes HTTP requests to external APIs."""

from __future__ import annotations

import json
from typing import Any

import httpx

from ...core.exceptions import NodeExecutionError
from ...engine.types import NodeData, NodeResult
from ..base import BaseNode, NodeProperty, NodePropertyOption, NodeTypeDescription


class HttpRequestNode(BaseNode):
    """
    HTTP Request node - one request per input item.

    Connection errors, timeouts and 5xx responses are reported as retryable
    failures; 4xx responses fail without retry unless `ignoreHttpErrors`.
    """

    node_description = NodeTypeDescription(
        name="HttpRequest",
        display_name="HTTP Request",
        description="Makes HTTP requests to external APIs",
        group=["transform"],
        properties=[
            NodeProperty(display_name="URL", name="url", type="string", required=True),
            NodeProperty(
                display_name="Method",
                name="method",
                type="options",
                default="GET",
                options=[
                    NodePropertyOption(name=m, value=m)
                    for m in ("GET", "POST", "PUT", "PATCH", "DELETE")
                ],
            ),
            NodeProperty(display_name="Headers", name="headers", type="json", default={}),
            NodeProperty(display_name="Body", name="body", type="json", default=None),
            NodeProperty(
                display_name="Response Type",
                name="responseType",
                type="options",
                default="json",
                options=[
                    NodePropertyOption(name="JSON", value="json"),
                    NodePropertyOption(name="Text", value="text"),
                ],
            ),
            NodeProperty(
                display_name="Ignore HTTP Errors",
                name="ignoreHttpErrors",
                type="boolean",
                default=False,
            ),
        ],
    )

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def execute(
        self,
        input_data: dict[str, list[NodeData]],
        parameters: dict[str, Any],
    ) -> NodeResult:
        url = self.get_parameter(parameters, "url")
        method = str(self.get_parameter(parameters, "method", "GET")).upper()
        response_type = self.get_parameter(parameters, "responseType", "json")
        ignore_errors = self.get_parameter(parameters, "ignoreHttpErrors", False)

        headers: dict[str, str] = {}
        headers_param = self.get_parameter(parameters, "headers", {})
        if isinstance(headers_param, list):
            for h in headers_param:
                if h.get("name"):
                    headers[h["name"]] = h.get("value", "")
        elif isinstance(headers_param, dict):
            headers.update(headers_param)

        body = None
        if method in ("POST", "PUT", "PATCH"):
            body = parameters.get("body")
            if isinstance(body, str) and body:
                try:
                    body = json.loads(body)
                except json.JSONDecodeError:
                    pass  # Keep as string

        results: list[NodeData] = []
        items = self.main_input(input_data) or [NodeData(json={})]

        async with httpx.AsyncClient(transport=self._transport) as client:
            for _item in items:
                try:
                    response = await client.request(
                        method=method,
                        url=url,
                        headers=headers,
                        json=body if isinstance(body, (dict, list)) else None,
                        content=body if isinstance(body, str) else None,
                    )
                except httpx.TransportError as e:
                    raise NodeExecutionError(f"HTTP request failed: {e}", retryable=True) from e

                if response.status_code >= 400 and not ignore_errors:
                    raise NodeExecutionError(
                        f"HTTP {response.status_code} from {url}",
                        retryable=response.status_code >= 500,
                    )

                response_data: Any
                if response_type == "text":
                    response_data = response.text
                else:
                    try:
                        response_data = response.json()
                    except ValueError:
                        response_data = {}

                results.append(
                    NodeData(json={
                        "statusCode": response.status_code,
                        "headers": dict(response.headers),
                        "body": response_data,
                    })
                )

        return self.output(results)
