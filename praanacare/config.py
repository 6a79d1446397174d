"""
PraanaCare Health API - Domain Configuration

Fixed clinical thresholds, penalties, keyword groups and canned texts
used by the scoring rules. These are not environment-tunable.
"""

from datetime import timedelta

# Emergency thresholds (temperature in °F, oxygen saturation in %)
EMERGENCY_THRESHOLDS = {
    "heart_rate_high": 120,
    "heart_rate_low": 50,
    "systolic_high": 180,
    "diastolic_high": 110,
    "systolic_low": 90,
    "diastolic_low": 60,
    "temperature_high": 103,
    "temperature_low": 95,
    "oxygen_low": 90,
}

# Health index per-reading penalties
HEALTH_INDEX_PENALTIES = {
    "heart_rate": 20,       # outside [60, 100]
    "blood_pressure": 25,   # systolic > 140 or diastolic > 90
    "temperature": 30,      # > 100 °F
    "oxygen": 35,           # < 95 %
}
NORMAL_HEART_RATE = (60, 100)
HIGH_SYSTOLIC = 140
HIGH_DIASTOLIC = 90
FEVER_TEMPERATURE = 100
LOW_OXYGEN = 95

# Flat per-alert penalty subtracted from the averaged health index
DEFAULT_ALERT_PENALTY = 5
EMPLOYER_ALERT_PENALTY = 10

# Risk assessment weights
ENVIRONMENT_PENALTIES = {
    "ambient_temperature": (35, 15),   # (threshold °C, points)
    "humidity": (80, 10),
    "air_quality": (150, 20),
}
TREND_PENALTIES = {"heart_rate": 10, "temperature": 15}
ALERT_SEVERITY_PENALTIES = {"critical": 25, "high": 15}
TREND_WINDOW = 5

# Risk level breakpoints (strictly greater than)
RISK_LEVEL_BREAKPOINTS = [
    (80, "critical"),
    (60, "high"),
    (40, "medium"),
]

# Keyword groups for the message risk analyser, checked in this order
MESSAGE_KEYWORD_GROUPS = [
    {
        "name": "emergency",
        "keywords": ["chest pain", "difficulty breathing", "can't breathe"],
        "risk_score": 95,
        "recommendations": ["Seek immediate medical attention"],
        "action": {
            "type": "emergency",
            "title": "Emergency Alert Triggered",
            "description": "Medical emergency team and supervisor notified",
        },
    },
    {
        "name": "fatigue",
        "keywords": ["headache", "dizzy", "tired", "fatigue"],
        "risk_score": 70,
        "recommendations": [
            "Take a break in a cool, shaded area",
            "Drink water and electrolytes",
        ],
        "action": {
            "type": "consultation",
            "title": "Doctor Consultation Booked",
            "description": "Video call with doctor scheduled for urgent review",
        },
    },
    {
        "name": "heat",
        "keywords": ["thirsty", "dehydrated", "hot"],
        "risk_score": 50,
        "recommendations": ["Increase fluid intake", "Take regular breaks"],
        "action": {
            "type": "reminder",
            "title": "Hydration Reminder Set",
            "description": "Reminder to drink water every 30 minutes",
        },
    },
]
DEFAULT_MESSAGE_RISK = 20
DEFAULT_MESSAGE_RECOMMENDATIONS = [
    "Continue monitoring your health",
    "Stay hydrated and take regular breaks",
]

# Assistant
EMERGENCY_RISK_SCORE = 80
REMOTE_REPLY_CONFIDENCE = 85
FALLBACK_REPLY_CONFIDENCE = 60
FALLBACK_REPLIES = {
    "emergency": (
        "I understand you're experiencing serious symptoms. Please seek immediate "
        "medical attention and notify your supervisor. Emergency services have been contacted."
    ),
    "elevated": (
        "Based on your symptoms, I recommend taking immediate rest in a cool area and "
        "drinking water. I've scheduled a consultation with a doctor for you."
    ),
    "routine": (
        "Thank you for sharing your health status. I'm monitoring your condition and "
        "will provide recommendations based on your vitals and symptoms."
    ),
}
EMPTY_REMOTE_REPLY = "I apologize, but I cannot process your request at the moment."
ASSISTANT_PERSONA = "You are Praana AI, an intelligent health assistant for industrial workers. "
ASSISTANT_INSTRUCTIONS = (
    "Provide helpful, actionable health advice. If you detect emergency conditions, "
    "recommend immediate medical attention."
)

# Reporting periods
PERIODS = {
    "1d": timedelta(days=1),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}
DEFAULT_PERIOD = "7d"

# Enumerations
ALERT_TYPES = ["heat_stress", "fatigue", "respiratory", "injury", "emergency", "medication", "appointment"]
ALERT_SEVERITIES = ["low", "medium", "high", "critical"]
VITALS_SOURCES = ["patient", "device", "doctor", "ai"]

# Alert lifecycle: status -> statuses reachable from it
ALERT_TRANSITIONS = {
    "active": {"acknowledged", "resolved", "dismissed"},
    "acknowledged": {"acknowledged", "resolved"},
    "resolved": set(),
    "dismissed": set(),
}

DEFAULT_DOCTOR_AVAILABILITY = {
    "monday": {"start": "09:00", "end": "17:00", "available": True},
    "tuesday": {"start": "09:00", "end": "17:00", "available": True},
    "wednesday": {"start": "09:00", "end": "17:00", "available": True},
    "thursday": {"start": "09:00", "end": "17:00", "available": True},
    "friday": {"start": "09:00", "end": "17:00", "available": True},
    "saturday": {"start": "09:00", "end": "13:00", "available": False},
    "sunday": {"start": "09:00", "end": "13:00", "available": False},
}

DEFAULT_EMPLOYER_SETTINGS = {
    "alertThresholds": {"heatStress": 80, "fatigue": 70, "respiratory": 60, "injury": 50},
    "notificationPreferences": {"email": True, "sms": False, "push": True},
    "workingHours": {"start": "08:00", "end": "17:00", "timezone": "UTC"},
}
