#!/usr/bin/env python3
"""
FastAPI Web Service for the Composition Advisor

This module provides REST API endpoints for single-shot composition analysis
of uploaded photos and for rate-limited analysis of a live frame stream.
"""

import os
import sys
import json
import time
import uuid
import asyncio
import logging
from typing import List, Dict, Optional, Any
from pathlib import Path

import uvicorn
import numpy as np
from fastapi import FastAPI, File, UploadFile, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import torch

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from analysis import CompositionAnalyzer, StreamAnalyzer
from models import create_saliency_oracle
from preprocessing import create_preprocessing_pipeline
from utils.validation import ValidationError
from utils.validation_api import (
    validate_image_format,
    validate_file_size,
    validate_analysis_config
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# API Configuration
API_VERSION = "1.0.0"
API_TITLE = "Composition Advisor API"
API_DESCRIPTION = """
Saliency-driven photography composition advice.

## Features

- **Single Image Analysis**: Upload a photo and get its salient regions,
  placement scores and directional advice
- **Live Stream Analysis**: Offer preview frames; analysis is rate limited
  and frames arriving while busy are dropped
- **Configurable Engine**: Threshold, region size filters, advice target
  and main subject policy can be set per request

## Composition Rules

1. **Rule of Thirds**: Distance to the nearest third-line intersection
2. **Center Composition**: Distance to the frame center
"""

STREAM_MIN_INTERVAL = float(os.environ.get("STREAM_MIN_INTERVAL", "0.2"))


# Pydantic Models
class AnalysisResponse(BaseModel):
    """Response model for composition analysis"""
    request_id: str = Field(..., description="Unique request identifier")
    image_size: Dict[str, int] = Field(..., description="Upright image size in pixels")
    processing_size: Dict[str, int] = Field(..., description="Resolution the saliency mask was processed at")
    subject_detected: bool = Field(..., description="Whether any salient region was retained")
    regions: List[Dict[str, Any]] = Field(..., description="Salient regions in image pixels")
    main_subject: Optional[Dict[str, Any]] = Field(default=None, description="Region the advice is computed for")
    score: Optional[Dict[str, Any]] = Field(default=None, description="Rule of thirds / center scores and recommendations")
    advice: List[Dict[str, Any]] = Field(..., description="Directional advice")
    processing_time: float = Field(..., description="Processing time in seconds")
    timestamp: str = Field(..., description="Analysis timestamp")
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="Response metadata")


class StreamFrameResponse(BaseModel):
    """Response model for an offered stream frame"""
    accepted: bool = Field(..., description="False when the frame was dropped")
    update: Optional[Dict[str, Any]] = Field(default=None, description="Analysis of the frame, if it was analyzed")


class StreamStatsResponse(BaseModel):
    """Stream analyzer counters"""
    offered: int = Field(..., description="Frames offered")
    analyzed: int = Field(..., description="Frames analyzed")
    dropped: int = Field(..., description="Frames dropped by rate limiting or while busy")
    failed: int = Field(..., description="Frames whose analysis failed")
    in_flight: bool = Field(..., description="Whether an analysis is running")
    min_interval: float = Field(..., description="Minimum seconds between analyzed frames")


class HealthResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    uptime: float = Field(..., description="Service uptime in seconds")
    gpu_available: bool = Field(..., description="GPU availability")
    oracle: Optional[str] = Field(default=None, description="Saliency oracle in use")
    busy: bool = Field(..., description="Whether a single-shot analysis is in progress")


# Initialize FastAPI app
app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global variables
composition_analyzer = None
stream_analyzer = None
preprocessor = None
service_start_time = time.time()


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize the saliency oracle and analyzers on startup"""
    global composition_analyzer, stream_analyzer, preprocessor

    logger.info("Starting Composition Advisor API...")

    try:
        # Initialize device
        device = 'cuda' if torch.cuda.is_available() else 'cpu'
        logger.info(f"Using device: {device}")

        oracle = create_saliency_oracle(os.environ.get("SALIENCY_MODEL_PATH"), device=device)
        logger.info(f"✓ Saliency oracle initialized: {oracle.name}")

        composition_analyzer = CompositionAnalyzer(oracle=oracle)
        logger.info("✓ Composition analyzer initialized")

        stream_analyzer = StreamAnalyzer(composition_analyzer, min_interval=STREAM_MIN_INTERVAL)
        logger.info("✓ Stream analyzer initialized")

        preprocessor = create_preprocessing_pipeline(composition_analyzer.config)
        logger.info("✓ Image preprocessor initialized")

        logger.info("API startup completed successfully!")

    except Exception as e:
        logger.error(f"Startup failed: {str(e)}")
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the analyzer worker threads"""
    if stream_analyzer is not None:
        stream_analyzer.close(wait=False)
    if composition_analyzer is not None:
        composition_analyzer.shutdown(wait=False)


def parse_analysis_config(config: Optional[str]) -> Dict[str, Any]:
    """Parse and validate the JSON ``config`` query parameter"""
    if not config:
        return {}

    try:
        config_dict = json.loads(config)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid config JSON: {str(e)}")

    is_valid, errors = validate_analysis_config(config_dict)
    if not is_valid:
        raise HTTPException(status_code=400, detail={"message": "Invalid analysis config", "errors": errors})

    return config_dict


async def load_image_from_upload(file: UploadFile) -> np.ndarray:
    """Load an upright BGR image from an uploaded file"""
    if not validate_image_format(file.filename):
        raise HTTPException(status_code=400, detail="Unsupported image format")

    image_data = await file.read()

    if not validate_file_size(len(image_data)):
        raise HTTPException(status_code=400, detail="Image file is empty or too large")

    try:
        return preprocessor.load_image_bytes(image_data)
    except ValidationError as e:
        logger.error(f"Image loading failed: {str(e)}")
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Service health check endpoint"""
    return HealthResponse(
        status="healthy" if composition_analyzer is not None else "starting",
        version=API_VERSION,
        uptime=time.time() - service_start_time,
        gpu_available=torch.cuda.is_available(),
        oracle=composition_analyzer.oracle.name if composition_analyzer is not None else None,
        busy=composition_analyzer.is_busy if composition_analyzer is not None else False
    )


@app.post("/analyze", response_model=AnalysisResponse)
async def analyze_composition(
    file: UploadFile = File(..., description="Image file to analyze"),
    config: Optional[str] = None
):
    """
    Analyze the composition of a single image

    Only one analysis runs at a time; a request arriving while another is
    in progress is rejected with 409.
    """
    request_id = str(uuid.uuid4())

    overrides = parse_analysis_config(config)
    image = await load_image_from_upload(file)
    logger.debug(f"Image loaded for {request_id}: {image.shape}")

    future = composition_analyzer.submit(image, overrides=overrides)
    if future is None:
        raise HTTPException(status_code=409, detail="An analysis is already in progress")

    outcome = await asyncio.wrap_future(future)

    if not outcome.succeeded:
        logger.error(f"Analysis failed for {request_id}: {outcome.error}")
        status_code = 422 if outcome.error_type == ValidationError.__name__ else 500
        raise HTTPException(status_code=status_code, detail=f"Analysis failed: {outcome.error}")

    results = outcome.result
    logger.info(f"Analysis completed for {request_id} in {results.processing_time:.3f}s - "
                f"{len(results.regions)} regions")

    return AnalysisResponse(
        request_id=request_id,
        metadata={
            "original_filename": file.filename,
            "config": overrides
        },
        **results.to_dict()
    )


@app.post("/stream/frame", response_model=StreamFrameResponse)
async def offer_stream_frame(file: UploadFile = File(..., description="Preview frame")):
    """
    Offer a frame to the stream analyzer

    Frames arriving sooner than the minimum interval after the previous
    analyzed frame, or while an analysis is running, are dropped.
    """
    image = await load_image_from_upload(file)

    future = stream_analyzer.offer_frame(image)
    if future is None:
        return StreamFrameResponse(accepted=False)

    update = await asyncio.wrap_future(future)
    return StreamFrameResponse(
        accepted=True,
        update=update.to_dict() if update is not None else None
    )


@app.get("/stream/latest", response_model=StreamFrameResponse)
async def latest_stream_update():
    """Most recent stream analysis"""
    update = stream_analyzer.latest_update
    if update is None:
        raise HTTPException(status_code=404, detail="No frame has been analyzed yet")

    return StreamFrameResponse(accepted=True, update=update.to_dict())


@app.get("/stream/stats", response_model=StreamStatsResponse)
async def stream_stats():
    """Stream analyzer counters"""
    return StreamStatsResponse(
        in_flight=stream_analyzer.in_flight,
        min_interval=stream_analyzer.min_interval,
        **stream_analyzer.stats()
    )


if __name__ == "__main__":
    # Run with uvicorn for development
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
