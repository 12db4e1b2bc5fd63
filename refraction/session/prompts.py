from refraction.gating.distance import DistanceZone
from refraction.session.phases import Adaptation, Eye
from refraction.tracking.frames import Direction

PRACTICE_INTRO = ("Let's practise four times: left, right, up, down. When you see which way "
                  "the E opens, answer by moving your head that way. Keep the phone level "
                  "with your eyes.")
PRACTICE_DONE = "Practice complete."
DISTANCE_INTRO = "Hold the phone level with your eyes and step back to 1.2 metres. The test starts automatically."
RELOCK_INTRO = "Please step back to 1.2 metres again. The white test continues automatically."
DISTANCE_OK = "Distance and posture are correct. Starting the test."
CORRECT = "Correct"
WRONG = "Wrong"
NO_RESPONSE = "No head movement detected"
SESSION_DONE = "The test is finished. Please pick up the phone."

DIRECTION_PROMPTS = {
    Direction.LEFT: "The opening points left. Turn your head left.",
    Direction.RIGHT: "The opening points right. Turn your head right.",
    Direction.UP: "The opening points up. Tilt your head up.",
    Direction.DOWN: "The opening points down. Nod your head down.",
}

TILT_HINT = "Please hold the phone upright."
LIGHT_HINT = "The room is too dark. Turn on a light or move somewhere brighter."
PROMOTION_DISTANCE_HINT = "Your distance changed. Please return to 1.2 metres."
POSE_HINT = "Please face the screen directly."


def distance_hint(zone: DistanceZone) -> str:
    if zone is DistanceZone.NEAR:
        return "Too close, please move farther away."
    return "Too far, please move closer."


def eye_height_hint(eye_height_m: float) -> str:
    # Eyes above the camera: the phone needs to go up
    return "Please raise the phone a little." if eye_height_m > 0 else "Please lower the phone a little."


def adaptation_intro(eye: Eye, adaptation: Adaptation, seconds: int) -> str:
    tested = "right" if eye is Eye.RIGHT else "left"
    covered = "left" if eye is Eye.RIGHT else "right"
    colour = "blue" if adaptation is Adaptation.PRIMARY else "white"
    return (f"Now testing your {tested} eye. Close your {covered} eye and look at the "
            f"{colour} screen for {seconds} seconds. Then answer with head movements.")
