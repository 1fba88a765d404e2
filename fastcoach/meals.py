"""Rule-based meal planning around a fast."""

from dataclasses import dataclass, field, replace
from typing import Any

from .errors import ValidationError
from .logbook import record_log
from .sessions import (
    SessionService, optional_number, optional_object, optional_text, required_text, string_list,
)

MEAL_TYPES = ("pre_fast", "breaking_fast", "post_fast", "regular")

REFEED_STARTER_HOURS = 16
LIQUIDS_FIRST_HOURS = 24
LOW_GLUCOSE = 70


@dataclass(frozen=True)
class MealRecommendation:
    meal_name: str
    description: str
    macros: dict[str, int]
    ingredients: list[str]
    preparation: list[str]
    timing: str
    portion_size: str
    glucose_impact: str  # low / medium / high
    digestibility: str  # easy / moderate / complex
    benefits: list[str]
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out = {
            "mealName": self.meal_name,
            "description": self.description,
            "macros": dict(self.macros),
            "ingredients": list(self.ingredients),
            "preparation": list(self.preparation),
            "timing": self.timing,
            "portionSize": self.portion_size,
            "glucoseImpact": self.glucose_impact,
            "digestibility": self.digestibility,
            "benefits": list(self.benefits),
        }
        if self.warnings:
            out["warnings"] = list(self.warnings)
        return out


@dataclass
class MealPlanRequest:
    meal_type: str
    session_id: str | None = None
    fasting_duration: float = 0
    current_glucose: float | None = None
    avoid_foods: list[str] = field(default_factory=list)


# ---- Meal catalogue ----

BALANCED_PRE_FAST = MealRecommendation(
    meal_name="Balanced Pre-Fast Dinner",
    description="A well-balanced meal to sustain you through your fast",
    macros={"protein": 35, "carbs": 30, "fat": 35, "calories": 650},
    ingredients=[
        "6 oz grilled salmon or chicken breast",
        "1 cup roasted sweet potato",
        "2 cups mixed leafy greens",
        "1/2 avocado",
        "2 tbsp olive oil",
        "1 tbsp nuts or seeds",
    ],
    preparation=[
        "Season and grill protein of choice",
        "Roast sweet potato with olive oil",
        "Prepare salad with avocado and nuts",
        "Drizzle with olive oil and lemon",
    ],
    timing="2-4 hours before fasting starts",
    portion_size="Standard dinner portion",
    glucose_impact="medium",
    digestibility="moderate",
    benefits=[
        "Sustained energy release",
        "High satiety from protein and fat",
        "Complex carbs for stable glucose",
        "Fiber for digestive health",
    ],
)

LOW_CARB_PRE_FAST = MealRecommendation(
    meal_name="High-Fat Low-Carb Pre-Fast",
    description="Ketogenic-friendly meal for easier transition to fasting",
    macros={"protein": 30, "carbs": 10, "fat": 60, "calories": 700},
    ingredients=[
        "6 oz grass-fed beef or fatty fish",
        "2 cups sautéed spinach",
        "1 whole avocado",
        "2 tbsp MCT oil or coconut oil",
        "1 oz macadamia nuts",
        "Herbs and spices",
    ],
    preparation=[
        "Cook protein in coconut oil",
        "Sauté spinach with garlic",
        "Slice avocado and add nuts",
        "Season generously with herbs",
    ],
    timing="3-4 hours before fasting starts",
    portion_size="Generous portions of fat and protein",
    glucose_impact="low",
    digestibility="moderate",
    benefits=["Easier transition to ketosis", "Minimal glucose spike", "High satiety", "Anti-inflammatory fats"],
)

REFEEDING_STARTER = MealRecommendation(
    meal_name="Gentle Refeeding Starter",
    description="Easy-to-digest foods to gently break your fast",
    macros={"protein": 15, "carbs": 20, "fat": 25, "calories": 200},
    ingredients=[
        "1 cup bone broth",
        "1/4 cup sauerkraut or kimchi",
        "1 tbsp MCT oil or coconut oil",
        "Pinch of sea salt",
        "Fresh herbs",
    ],
    preparation=[
        "Warm bone broth gently",
        "Add MCT oil and sea salt",
        "Serve with small portion of fermented vegetables",
        "Sip slowly over 15-20 minutes",
    ],
    timing="First 30 minutes after breaking fast",
    portion_size="Small starter portion",
    glucose_impact="low",
    digestibility="easy",
    benefits=[
        "Gentle on digestive system",
        "Electrolyte replenishment",
        "Probiotic support",
        "Minimal glucose impact",
    ],
)

STANDARD_BREAKING = MealRecommendation(
    meal_name="Standard Fast-Breaking Meal",
    description="Balanced meal for shorter fasts",
    macros={"protein": 30, "carbs": 35, "fat": 35, "calories": 500},
    ingredients=[
        "4 oz lean protein (chicken, fish, tofu)",
        "1 cup steamed vegetables",
        "1/2 cup quinoa or brown rice",
        "1 tbsp olive oil",
        "Mixed herbs and spices",
    ],
    preparation=[
        "Cook protein gently (avoid frying)",
        "Steam vegetables until tender",
        "Prepare quinoa or rice",
        "Combine with olive oil and herbs",
    ],
    timing="30-60 minutes after breaking fast",
    portion_size="Moderate portion",
    glucose_impact="medium",
    digestibility="moderate",
    benefits=["Balanced nutrition", "Steady energy", "Good digestibility"],
)

EXTENDED_RECOVERY = MealRecommendation(
    meal_name="Extended Fast Recovery Meal",
    description="Carefully designed meal for longer fasts",
    macros={"protein": 25, "carbs": 25, "fat": 50, "calories": 400},
    ingredients=[
        "3 oz wild-caught salmon",
        "1 cup steamed broccoli",
        "1/2 avocado",
        "1 tbsp olive oil",
        "Lemon and herbs",
        "Small handful of nuts",
    ],
    preparation=[
        "Gently poach or bake salmon",
        "Steam broccoli until just tender",
        "Slice avocado and add nuts",
        "Dress with olive oil and lemon",
    ],
    timing="45-90 minutes after initial starter",
    portion_size="Small to moderate portion",
    glucose_impact="low",
    digestibility="easy",
    benefits=["High-quality protein", "Anti-inflammatory fats", "Easy digestion", "Nutrient dense"],
    warnings=["Eat slowly", "Chew thoroughly", "Stop if feeling too full"],
)

POST_FAST_RECOVERY = MealRecommendation(
    meal_name="Post-Fast Recovery Meal",
    description="Nutrient-dense meal to support recovery and maintain benefits",
    macros={"protein": 35, "carbs": 30, "fat": 35, "calories": 600},
    ingredients=[
        "5 oz grass-fed beef or wild fish",
        "2 cups mixed vegetables",
        "1 medium sweet potato",
        "2 tbsp avocado oil",
        "Fresh herbs and spices",
    ],
    preparation=[
        "Cook protein to preference",
        "Roast vegetables with avocado oil",
        "Bake sweet potato",
        "Season with herbs and spices",
    ],
    timing="2-4 hours after breaking fast",
    portion_size="Full meal portion",
    glucose_impact="medium",
    digestibility="moderate",
    benefits=["Complete amino acid profile", "Micronutrient replenishment", "Sustained energy", "Metabolic support"],
)

METABOLIC_REGULAR = MealRecommendation(
    meal_name="Metabolically Optimized Meal",
    description="Balanced meal to support your fasting lifestyle",
    macros={"protein": 30, "carbs": 35, "fat": 35, "calories": 550},
    ingredients=[
        "4 oz lean protein source",
        "1.5 cups non-starchy vegetables",
        "1/2 cup complex carbohydrates",
        "1-2 tbsp healthy fats",
        "Herbs and spices",
    ],
    preparation=[
        "Prepare protein using healthy cooking methods",
        "Include variety of colorful vegetables",
        "Choose whole grain or legume carbs",
        "Add healthy fats for satiety",
    ],
    timing="During eating window",
    portion_size="Balanced portions",
    glucose_impact="medium",
    digestibility="moderate",
    benefits=["Supports metabolic health", "Maintains fasting benefits", "Balanced nutrition", "Sustained energy"],
)


# ---- Plans ----

def metabolic_state(fasting_duration: float) -> str:
    if fasting_duration > 48:
        return "extended_fasting"
    if fasting_duration > 24:
        return "deep_ketosis"
    if fasting_duration > 16:
        return "ketotic"
    return "normal"


def _pre_fast(req: MealPlanRequest):
    guidance = (
        "Choose a pre-fast meal that will sustain you without causing a large glucose spike. "
        "Focus on protein, healthy fats, and complex carbohydrates. Avoid refined sugars and "
        "processed foods."
    )
    return [BALANCED_PRE_FAST, LOW_CARB_PRE_FAST], guidance, "fed_state"


def _breaking_fast(req: MealPlanRequest):
    hours = req.fasting_duration
    meals = []
    if hours >= REFEED_STARTER_HOURS:
        meals += [REFEEDING_STARTER, EXTENDED_RECOVERY]
    else:
        meals.append(STANDARD_BREAKING)

    guidance = "Break your fast gently with easily digestible foods. "
    if hours >= LIQUIDS_FIRST_HOURS:
        guidance += "For extended fasts, start with liquids and progress slowly to solid foods. "
    glucose = req.current_glucose
    if glucose is not None and glucose < LOW_GLUCOSE:
        guidance += (
            f"Your glucose is {glucose:g} mg/dL, so include some carbohydrates in your first "
            "meal and recheck it in 15 minutes. "
        )
    guidance += "Listen to your body and eat mindfully."
    return meals, guidance, metabolic_state(hours)


def _post_fast(req: MealPlanRequest):
    guidance = (
        "Focus on nutrient-dense whole foods to replenish what was used during fasting. Maintain "
        "the metabolic benefits by avoiding processed foods and excessive carbohydrates."
    )
    return [POST_FAST_RECOVERY], guidance, "recovery"


def _regular(req: MealPlanRequest):
    guidance = (
        "Maintain the benefits of fasting by choosing nutrient-dense, whole foods during your "
        "eating windows. Focus on protein, vegetables, and healthy fats."
    )
    return [METABOLIC_REGULAR], guidance, "maintenance"


_PLANNERS = {
    "pre_fast": _pre_fast,
    "breaking_fast": _breaking_fast,
    "post_fast": _post_fast,
    "regular": _regular,
}


def _flag_avoided(meal: MealRecommendation, avoid: list[str]) -> MealRecommendation:
    hits = [food for food in avoid if any(food in i.lower() for i in meal.ingredients)]
    if not hits:
        return meal
    extra = [f"Contains {food}; swap or omit it" for food in hits]
    return replace(meal, warnings=list(meal.warnings) + extra)


def generate_meal_plan(req: MealPlanRequest) -> dict[str, Any]:
    planner = _PLANNERS.get(req.meal_type)
    if planner is None:
        raise ValidationError(f"'mealType' must be one of: {', '.join(MEAL_TYPES)}")

    meals, guidance, state = planner(req)
    avoid = [food.lower() for food in req.avoid_foods if food]
    return {
        "meals": [_flag_avoided(m, avoid).to_dict() for m in meals],
        "guidance": guidance,
        "metabolicState": state,
    }


def generate_hydration_guidance(req: MealPlanRequest) -> dict[str, str]:
    if req.meal_type == "breaking_fast":
        return {
            "immediate": "Drink 8-12 oz of water 15-30 minutes before eating",
            "during": "Sip small amounts of water during the meal, avoid large quantities",
            "after": "Wait 30-60 minutes after eating before drinking large amounts",
            "daily": "Aim for 8-10 glasses of water throughout the day",
            "electrolytes": (
                "Add electrolytes to first glass of water"
                if req.fasting_duration > 16
                else "Regular water is fine"
            ),
        }

    return {
        "general": "Stay well hydrated throughout your eating window",
        "timing": "Drink most fluids between meals rather than during",
        "quality": "Choose filtered water and herbal teas",
        "amount": "Half your body weight in ounces per day",
    }


def generate_electrolyte_recommendations(req: MealPlanRequest) -> dict[str, Any]:
    if req.fasting_duration > 16 or req.meal_type == "breaking_fast":
        return {
            "sodium": {
                "amount": "1-2g with first meal",
                "sources": ["Sea salt", "Pink Himalayan salt", "Bone broth"],
                "timing": "With breaking fast meal",
            },
            "potassium": {
                "amount": "2-3g throughout the day",
                "sources": ["Avocado", "Leafy greens", "Coconut water"],
                "timing": "Spread throughout eating window",
            },
            "magnesium": {
                "amount": "300-400mg",
                "sources": ["Dark leafy greens", "Nuts", "Seeds"],
                "timing": "With evening meal for better sleep",
            },
        }

    return {
        "general": "Focus on whole foods rich in natural electrolytes",
        "sources": ["Vegetables", "Fruits", "Nuts", "Seeds"],
        "timing": "Throughout eating window",
    }


def generate_timing_guidance(req: MealPlanRequest) -> dict[str, str]:
    if req.meal_type == "pre_fast":
        return {
            "optimal": "2-4 hours before fasting begins",
            "latest": "2 hours before fasting begins",
            "reasoning": "Allows for proper digestion before fasting state",
        }
    if req.meal_type == "breaking_fast":
        return {
            "immediate": "Start with liquids or very light foods",
            "progression": (
                "Wait 30-60 minutes between courses" if req.fasting_duration > 16 else "Can eat normally"
            ),
            "reasoning": "Gentle reintroduction prevents digestive discomfort",
        }
    if req.meal_type == "post_fast":
        return {
            "timing": "2-4 hours after breaking fast",
            "reasoning": "Allows digestive system to readjust",
        }
    return {
        "general": "Eat during your designated eating window",
        "spacing": "Allow 3-4 hours between meals",
    }


class MealPlanner:
    """Request-scoped: builds a plan and, for a known session, logs the request."""

    def __init__(self, db_session, user_id: str) -> None:
        self.db_session = db_session
        self.user_id = user_id
        self.sessions = SessionService(db_session, user_id)

    @staticmethod
    def parse(data: dict[str, Any]) -> MealPlanRequest:
        preferences = optional_object(data.get("preferences"), "preferences")
        return MealPlanRequest(
            meal_type=required_text(data.get("mealType"), "mealType"),
            session_id=optional_text(data.get("sessionId"), "sessionId"),
            fasting_duration=optional_number(data.get("fastingDuration"), "fastingDuration") or 0,
            current_glucose=optional_number(data.get("currentGlucose"), "currentGlucose"),
            avoid_foods=string_list(preferences.get("avoidFoods"), "avoidFoods"),
        )

    def plan(self, req: MealPlanRequest) -> dict[str, Any]:
        session = self.sessions.get(req.session_id) if req.session_id else None
        meal_plan = generate_meal_plan(req)

        if session is not None:
            record_log(
                self.db_session,
                session_id=session.id,
                user_id=self.user_id,
                log_type="meal_planning",
                value={
                    "meal_type": req.meal_type,
                    "recommendations": len(meal_plan["meals"]),
                    "fasting_duration": req.fasting_duration,
                },
            )

        return {
            "mealPlan": meal_plan,
            "hydrationGuidance": generate_hydration_guidance(req),
            "electrolyteRecommendations": generate_electrolyte_recommendations(req),
            "timingGuidance": generate_timing_guidance(req),
        }
