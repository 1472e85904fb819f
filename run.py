#!/usr/bin/env python3
"""
Run script for the FlightWx reschedule service
"""
import uvicorn

from flightwx.config.settings import settings

if __name__ == "__main__":
    uvicorn.run("flightwx.main:app", host=settings.host, port=settings.port, reload=settings.debug)
