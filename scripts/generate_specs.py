#!/usr/bin/env python3
"""
Generate JSON Schemas, YAML variants, and OpenAPI from Pydantic models.

Outputs under src/specs/:
 - schemas/*.json (and *.yaml)
 - openapi.yaml and openapi.json
"""
from __future__ import annotations

import json
import sys
from pathlib import Path

import yaml


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SPECS = SRC / "specs"
SCHEMAS_DIR = SPECS / "schemas"

sys.path.insert(0, str(ROOT))

from src.specs.schema_registry import SCHEMA_MODELS  # noqa: E402
from src.specs.http.submit_post import (  # noqa: E402
    ErrorResponse,
    PostFormBody,
    PostFormDefaultsResponse,
    SubmitPostResponse,
)


def write_json_yaml(obj: dict, json_path: Path) -> None:
    json_path.parent.mkdir(parents=True, exist_ok=True)
    with json_path.open("w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
    yaml_path = json_path.with_suffix(".yaml")
    with yaml_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(obj, f, sort_keys=False)


def generate_model_schemas() -> None:
    for filename, model in SCHEMA_MODELS.items():
        schema = model.model_json_schema()
        write_json_yaml(schema, SCHEMAS_DIR / filename)


def _json_content(ref: str) -> dict:
    return {"application/json": {"schema": {"$ref": f"#/components/schemas/{ref}"}}}


def _multipart_form() -> dict:
    return {
        "multipart/form-data": {
            "schema": {
                "type": "object",
                "required": ["caption"],
                "properties": {
                    "caption": {"type": "string", "minLength": 1},
                    "file": {"type": "string", "format": "binary"},
                    "location": {"type": "string"},
                    "tags": {"type": "string", "description": "Comma separated tags"},
                },
            }
        },
        **_json_content("PostFormBody"),
    }


def _submit_responses(success_code: str, success_description: str) -> dict:
    return {
        success_code: {"description": success_description, "content": _json_content("SubmitPostResponse")},
        "400": {"description": "Invalid body or validation error", "content": _json_content("ErrorResponse")},
        "401": {"description": "No authenticated principal", "content": _json_content("ErrorResponse")},
        "409": {"description": "Submission for this post already in flight", "content": _json_content("ErrorResponse")},
        "502": {
            "description": "Upload or store failure; navigation suppressed",
            "content": _json_content("SubmitPostResponse"),
        },
    }


def build_openapi() -> dict:
    # Inline the model schemas as OpenAPI components
    components = {
        "schemas": {
            "PostFormBody": PostFormBody.model_json_schema(),
            "SubmitPostResponse": SubmitPostResponse.model_json_schema(),
            "PostFormDefaultsResponse": PostFormDefaultsResponse.model_json_schema(),
            "ErrorResponse": ErrorResponse.model_json_schema(),
        }
    }
    post_id_param = {"in": "path", "name": "postId", "schema": {"type": "string"}, "required": True}

    spec = {
        "openapi": "3.0.3",
        "info": {
            "title": "Post Composer Functions API",
            "version": "0.1.0",
            "description": "HTTP endpoints for creating and editing posts.",
        },
        "servers": [
            {"url": "http://localhost:7071/api", "description": "Local Functions host"}
        ],
        "paths": {
            "/posts": {
                "post": {
                    "summary": "Create a post",
                    "operationId": "createPost",
                    "requestBody": {"required": True, "content": _multipart_form()},
                    "responses": _submit_responses("201", "Post created; navigate home"),
                }
            },
            "/posts/{postId}": {
                "post": {
                    "summary": "Replace an existing post",
                    "operationId": "updatePost",
                    "parameters": [post_id_param],
                    "requestBody": {"required": True, "content": _multipart_form()},
                    "responses": {
                        **_submit_responses("200", "Post updated, or rejected by the store in lenient mode"),
                        "404": {"description": "Post not found", "content": _json_content("ErrorResponse")},
                    },
                }
            },
            "/posts/{postId}/form": {
                "get": {
                    "summary": "Initial values for the edit form",
                    "operationId": "getPostForm",
                    "parameters": [post_id_param],
                    "responses": {
                        "200": {"description": "Form defaults", "content": _json_content("PostFormDefaultsResponse")},
                        "404": {"description": "Post not found", "content": _json_content("ErrorResponse")},
                    },
                }
            },
        },
        "components": components,
    }
    return spec


def generate_openapi() -> None:
    spec = build_openapi()
    write_json_yaml(spec, SPECS / "openapi.json")


def main() -> None:
    generate_model_schemas()
    generate_openapi()
    print("Specs generated under src/specs/")


if __name__ == "__main__":
    main()
