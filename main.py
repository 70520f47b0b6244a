# main.py
from fastapi import FastAPI, Depends
from sqlalchemy.orm import Session
from database import engine, get_db # create_engine code lives in database.py
import models, schemas
from fastapi.middleware.cors import CORSMiddleware
from irrigation_routers import router as irrigation_router
from dotenv import load_dotenv
import logging, os


load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("irrigation_api")

models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="Garden Irrigation API", version="1.0")
app.include_router(irrigation_router)

# allow Streamlit (localhost:8501) to call the API during dev
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:8501").split(","),
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)


# --- endpoints -----------------------------------------------------------
@app.get("/", status_code=200)
def home():
    return {"message" : "Garden irrigation API is up"}

@app.post("/readings", response_model=schemas.SensorReadingOut, status_code=201)
def ingest_reading(
    data: schemas.SensorReadingIn,
    db: Session = Depends(get_db),
):
    # firmware pushes one reading per cycle; soil value already scaled to %
    reading = models.SensorReading(**data.model_dump())
    db.add(reading)
    db.commit()
    db.refresh(reading)
    logger.debug("Reading stored: soil=%s temp=%s", reading.soil_moisture, reading.temperature)
    return reading
