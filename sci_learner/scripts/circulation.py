"""Circulation and Gas Exchange, Lesson 1: The Circulatory System.

Six modules, each following the SCI-learner module sequence:
Fa-SCI-nate → Goal SCI-tting → Pre-SCI-ntation → Inve-SCI-tigation →
Self-A-SCI-ssment → SCI-pplementary.

Evaluation contexts describe the question and the accepted answer concept.
The tutor's verdict wording (Correct! / Partially correct! / Not quite) is
set by the explanation prompt, not here.
"""

from sci_learner.models import PacingHint, Script, ScriptStep

LESSON_ID = "lesson_circ_1"
LESSON_TITLE = "Circulation and Gas Exchange: The Circulatory System"
TOPIC_ID = "body_systems"


def _narrate(*messages: str, wait: bool = False, hint: PacingHint = "normal") -> ScriptStep:
    return ScriptStep(messages=messages, channel="narration", wait_for_user=wait, pacing_hint=hint)


def _say(*messages: str) -> ScriptStep:
    return ScriptStep(messages=messages, channel="interaction")


def _ask(*messages: str, context: str | None = None) -> ScriptStep:
    return ScriptStep(
        messages=messages,
        channel="interaction",
        wait_for_user=True,
        evaluation_context=context,
    )


def _complete(*messages: str) -> ScriptStep:
    return ScriptStep(messages=messages, channel="narration", is_module_complete=True)


# ---------------------------------------------------------------------------
# Module 1: Fa-SCI-nate
# ---------------------------------------------------------------------------

FASCINATE = Script(
    module_id="module_circ_fascinate",
    title="Fa-SCI-nate",
    module_type="fascinate",
    lesson_id=LESSON_ID,
    lesson_title=LESSON_TITLE,
    topic_id=TOPIC_ID,
    steps=(
        _narrate(
            "Hello, SCI-learner! 👋\n\nKumusta! Welcome to today's science journey here in Roxas City.",
            "Today, we'll explore how your body moves blood and exchanges gases.",
            "Just like boats carry goods from Culasi fish port to different barangays, "
            "your body has a transport system too!",
            "This lesson is all about **Circulation and Gas Exchange**, your body's very own delivery network. 🫀",
        ),
        _ask("Ready to dive in? Let's get **Fa-SCI-nated**!"),
        _narrate(
            "Imagine this...\n\n"
            "You're biking along Roxas Boulevard during sunset or dancing "
            "energetically during Sinadya Festival.\n\n"
            "Have you noticed your heart beating faster?",
            wait=True,
        ),
        _narrate("That's a good observation! So here's a question:", hint="fast"),
        _ask(
            "**Why do you think your heart beats faster when you move?**",
            context=(
                'The student is answering: "Why does your heart beat faster when you move?"\n'
                "Correct answer concept: when you move, your muscles need more oxygen and "
                "energy. The heart beats faster to pump more blood carrying oxygen and "
                "nutrients to the active muscles.\n"
                "Accept answers that mention muscles needing more oxygen, energy or blood."
            ),
        ),
        _narrate("Here's another question:", hint="fast"),
        _ask(
            "**What do you think carries oxygen from your lungs to your muscles?**",
            context=(
                'The student is answering: "What carries oxygen from the lungs to the muscles?"\n'
                "Correct answer: blood. Red blood cells contain hemoglobin, which binds oxygen "
                "in the lungs and carries it through the blood vessels to the muscles.\n"
                '"Blood", "red blood cells" and "hemoglobin" are all correct.'
            ),
        ),
        _say(
            "Just like how delivery trucks distribute seafood from the port to the "
            "markets around Capiz, your body has a system that delivers oxygen, "
            "nutrients, and energy to every cell.\n\n"
            "That amazing system is called the **circulatory system**!"
        ),
        _complete(
            "Great job, SCI-learner! You've completed this module.",
            "You're ready to move on to the next module where we'll set our learning goals.",
            "Tap **Next** when you're ready!",
        ),
    ),
)


# ---------------------------------------------------------------------------
# Module 2: Goal SCI-tting
# ---------------------------------------------------------------------------

GOAL_SCITTING = Script(
    module_id="module_circ_goal",
    title="Goal SCI-tting",
    module_type="goal",
    lesson_id=LESSON_ID,
    lesson_title=LESSON_TITLE,
    topic_id=TOPIC_ID,
    steps=(
        _narrate(
            "Every journey needs a destination! Let's set our learning goals.",
            "By the end of this lesson, you should be able to:\n\n"
            "1. Describe the parts of the circulatory system.\n\n"
            "2. Explain how the heart pumps blood through the body.\n\n"
            "3. Explain how oxygen and carbon dioxide are exchanged in the lungs.",
            hint="slow",
        ),
        _ask(
            "Which of these goals are you most excited about? Tell me in your own words!",
        ),
        _narrate(
            "Keep that goal in mind as we go. Checking your goals at the end helps you see how much you learned.",
        ),
        _complete(),
    ),
)


# ---------------------------------------------------------------------------
# Module 3: Pre-SCI-ntation
# ---------------------------------------------------------------------------

PRESENTATION = Script(
    module_id="module_circ_presentation",
    title="Pre-SCI-ntation",
    module_type="presentation",
    lesson_id=LESSON_ID,
    lesson_title=LESSON_TITLE,
    topic_id=TOPIC_ID,
    steps=(
        _narrate(
            "The circulatory system has three main parts: the heart, the blood vessels, and the blood.",
            "The heart is a muscular pump about the size of your fist. It sits in your chest, "
            "slightly to the left. It has four chambers. The two upper chambers are the atria. "
            "The two lower chambers are the ventricles.",
            "The right side of the heart pumps oxygen-poor blood to the lungs. "
            "The left side pumps oxygen-rich blood to the rest of the body.",
            hint="slow",
        ),
        _ask(
            "**How many chambers does the human heart have, and what are they called?**",
            context=(
                'The student is answering: "How many chambers does the heart have, and what are they called?"\n'
                "Correct answer: four chambers, two atria (upper chambers, left and right atrium) "
                "and two ventricles (lower chambers, left and right ventricle).\n"
                "Saying four chambers without naming them is partially correct."
            ),
        ),
        _narrate(
            "Blood travels through three kinds of blood vessels.",
            "Arteries carry blood away from the heart. They have thick, elastic walls because "
            "the blood inside them is under high pressure.",
            "Veins carry blood back to the heart. They have valves that keep blood from flowing backward.",
            "Capillaries are tiny vessels, only one cell thick, where materials pass between the blood and the cells.",
            hint="slow",
        ),
        _ask(
            "**What is the difference between arteries and veins?**",
            context=(
                'The student is answering: "What is the difference between arteries and veins?"\n'
                "Correct answer: arteries carry blood away from the heart; veins carry blood back "
                "to the heart. Arteries have thicker, more elastic walls; veins have valves.\n"
                "The direction of blood flow is the key idea. Wall thickness or valves alone is partially correct."
            ),
        ),
        _narrate(
            "Blood itself is made of plasma, red blood cells, white blood cells, and platelets.",
            "Red blood cells carry oxygen, white blood cells fight germs, and platelets help blood clot when you get a cut.",
        ),
        _complete(),
    ),
)


# ---------------------------------------------------------------------------
# Module 4: Inve-SCI-tigation
# ---------------------------------------------------------------------------

INVESTIGATION = Script(
    module_id="module_circ_investigation",
    title="Inve-SCI-tigation",
    module_type="investigation",
    lesson_id=LESSON_ID,
    lesson_title=LESSON_TITLE,
    topic_id=TOPIC_ID,
    steps=(
        _narrate(
            "Time to investigate like a real scientist! 🔬",
            "Place two fingers on the side of your neck, just below your jaw. "
            "Count the beats you feel for 15 seconds, then multiply by 4.",
            "That number is your resting heart rate in beats per minute.",
            hint="slow",
        ),
        _ask("What was your resting heart rate? Share your count with me!"),
        _narrate(
            "Now do 20 jumping jacks, then measure your pulse again the same way.",
            "Compare the two numbers.",
            wait=True,
        ),
        _ask(
            "**Why did your heart rate go up after the jumping jacks?**",
            context=(
                'The student is answering: "Why did your heart rate increase after jumping jacks?"\n'
                "Correct answer: exercising muscles use more oxygen and produce more carbon dioxide. "
                "The heart pumps faster to deliver more oxygen-rich blood to the muscles and carry "
                "carbon dioxide away to the lungs.\n"
                "Mentioning muscles needing more oxygen is enough for a correct answer."
            ),
        ),
        _narrate(
            "You also breathed faster, right? That's your respiratory system working with your circulatory system.",
            "In the lungs, air reaches tiny air sacs called alveoli. Capillaries wrap around each one.",
            "Oxygen moves from the alveoli into the blood, and carbon dioxide moves from the blood "
            "into the alveoli to be breathed out. This is called gas exchange.",
            hint="slow",
        ),
        _ask(
            "**Where in the lungs does gas exchange happen?**",
            context=(
                'The student is answering: "Where in the lungs does gas exchange happen?"\n'
                "Correct answer: in the alveoli, the tiny air sacs of the lungs, which are surrounded "
                "by capillaries.\n"
                'Answering "air sacs" is correct. Answering only "in the lungs" is partially correct.'
            ),
        ),
        _complete(),
    ),
)


# ---------------------------------------------------------------------------
# Module 5: Self-A-SCI-ssment
# ---------------------------------------------------------------------------

ASSESSMENT = Script(
    module_id="module_circ_assessment",
    title="Self-A-SCI-ssment",
    module_type="assessment",
    lesson_id=LESSON_ID,
    lesson_title=LESSON_TITLE,
    topic_id=TOPIC_ID,
    steps=(
        _narrate(
            "Let's check what you've learned! Don't worry, you can try each question more than once.",
        ),
        _ask(
            "**Question 1:** Which blood vessels carry blood away from the heart?",
            context=(
                'The student is answering: "Which blood vessels carry blood away from the heart?"\n'
                "Correct answer: arteries."
            ),
        ),
        _narrate("Next question!", hint="fast"),
        _ask(
            "**Question 2:** Which part of the blood carries oxygen?",
            context=(
                'The student is answering: "Which part of the blood carries oxygen?"\n'
                "Correct answer: red blood cells, using the protein hemoglobin. "
                '"Hemoglobin" alone is also correct.'
            ),
        ),
        _narrate("Last one!", hint="fast"),
        _ask(
            "**Question 3:** Which side of the heart pumps oxygen-rich blood to the body?",
            context=(
                'The student is answering: "Which side of the heart pumps oxygen-rich blood to the body?"\n'
                "Correct answer: the left side, specifically the left ventricle."
            ),
        ),
        _complete(),
    ),
)


# ---------------------------------------------------------------------------
# Module 6: SCI-pplementary (open Q&A before moving on)
# ---------------------------------------------------------------------------

SUPPLEMENTARY = Script(
    module_id="module_circ_supplementary",
    title="SCI-pplementary",
    module_type="supplementary",
    lesson_id=LESSON_ID,
    lesson_title=LESSON_TITLE,
    topic_id=TOPIC_ID,
    steps=(
        _narrate(
            "Here's a fun fact: if you laid out all the blood vessels in your body end to end, "
            "they would stretch about 100,000 kilometers. That's more than twice around the Earth! 🌏",
            "Your heart beats about 100,000 times every day without you even thinking about it.",
        ),
        _ask(
            "Do you have any questions about the circulatory system? Ask me anything! "
            "When you're ready to finish, just tell me.",
            context=(
                "This is an open question-and-answer session about the circulatory system and gas exchange.\n"
                "Answer the student's questions simply and accurately in 2-4 sentences, then ask "
                "if they have more questions.\n"
                "When the student says they have no more questions or are ready to move on, thank them "
                "and end your reply with exactly: Let's proceed!"
            ),
        ),
        _complete(),
    ),
)


LESSON_1_SCRIPTS = [
    FASCINATE,
    GOAL_SCITTING,
    PRESENTATION,
    INVESTIGATION,
    ASSESSMENT,
    SUPPLEMENTARY,
]
