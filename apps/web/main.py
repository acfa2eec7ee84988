"""FastAPI web application for DepMend."""

import tempfile
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from core.config import load_settings
from core.detect import identify
from core.exceptions import ConfigError, ManifestError
from core.parse_node import MANIFEST_NAME, parse_package_json
from core.pipeline import run_analysis

app = FastAPI(
    title="DepMend",
    description="Detect and fix dependency issues in package.json projects",
    version="0.1.0",
)


class AnalyzeRequest(BaseModel):
    """Request model for analyzing a manifest."""
    content: str
    registry_url: Optional[str] = None
    generate_fixes: bool = True


class AnalyzeResponse(BaseModel):
    """Response model for an analysis."""
    ecosystem: str
    issues: list[dict]
    summary: dict


@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.post("/api/analyze", response_model=AnalyzeResponse)
async def analyze_manifest(request: AnalyzeRequest):
    """Analyze package.json content and suggest fixes."""
    try:
        content = request.content.strip()
        if not content:
            raise HTTPException(status_code=400, detail="No content provided")

        ecosystem = identify(content)
        if ecosystem != "node":
            raise HTTPException(
                status_code=400,
                detail=f"Unsupported ecosystem: {ecosystem}. Only package.json is currently supported.",
            )

        try:
            parse_package_json(content)
        except ManifestError as e:
            raise HTTPException(status_code=400, detail=str(e))

        settings = load_settings()
        if request.registry_url and request.registry_url.rstrip("/") != settings.registry_url.rstrip("/"):
            raise HTTPException(
                status_code=400,
                detail=f"Registry not allowed: {request.registry_url}. Only {settings.registry_url} is configured.",
            )

        # The analyzer works on a project directory, so stage the upload in one
        with tempfile.TemporaryDirectory(prefix="depmend-web-") as project_dir:
            (Path(project_dir) / MANIFEST_NAME).write_text(content, encoding="utf-8")
            results = await run_analysis(
                project_dir, settings, ecosystem="node", generate_fixes=request.generate_fixes
            )

        result = results[0].to_dict()
        return AnalyzeResponse(
            ecosystem=result["ecosystem"],
            issues=result["issues"],
            summary=result["summary"],
        )

    except HTTPException:
        # Re-raise HTTP exceptions (don't convert to 500)
        raise
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error analyzing dependencies: {str(e)}")

