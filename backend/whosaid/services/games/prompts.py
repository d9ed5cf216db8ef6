import random
from typing import Iterable, Optional

PROMPTS = [
    "What's your most embarrassing moment from high school?",
    "If you could have dinner with any historical figure, who would it be?",
    "What's the weirdest food combination you secretly enjoy?",
    "What's your go-to karaoke song?",
    "If you could live in any fictional universe, which would you choose?",
    "What's the most ridiculous thing you've ever bought?",
    "What's your most unpopular opinion?",
    "If you could instantly master any skill, what would it be?",
    "What's the worst haircut you've ever had?",
    "What's your guilty pleasure TV show or movie?",
    "If you could swap lives with anyone for a day, who would it be?",
    "What's the strangest dream you've ever had?",
    "What's your most irrational fear?",
    "If you could only eat one food for the rest of your life, what would it be?",
    "What's the most trouble you got into as a kid?",
    "What's your secret talent that nobody knows about?",
    "What's the worst date you've ever been on?",
    "If you were a superhero, what would your power be?",
    "What's your biggest pet peeve?",
    "What's the weirdest habit you have?",
    "What's your favorite conspiracy theory?",
    "If you could eliminate one thing from daily life, what would it be?",
    "What's the most spontaneous thing you've ever done?",
    "What's your comfort food?",
    "What's the worst gift you've ever received?",
    "If you could live anywhere in the world, where would it be?",
    "What's the strangest thing you believed as a child?",
    "What's your worst fashion choice?",
    "What's the most awkward text you've ever sent?",
    "If you could be any age forever, what age would you choose?",
    "What's the most embarrassing song on your playlist?",
    "What's the weirdest compliment you've ever received?",
    "If you could have any job for a day, what would it be?",
    "What's the most ridiculous lie you've ever told?",
    "If you could uninvent one thing, what would it be?",
    "What's the worst advice you've ever received?",
    "What's your biggest kitchen disaster?",
    "If you could read minds for a day, whose mind would you read?",
    "What's the most cringe thing you've ever posted online?",
    "If you could have any fictional character as your best friend, who would it be?",
]


def select_random_prompt(used_prompts: Optional[Iterable[str]] = None, rng=None) -> str:
    """Pick a prompt not yet shown this session.

    Once every prompt has been used, the whole pool is eligible again.
    """
    rng = rng or random
    used = set(used_prompts or ())
    available = [p for p in PROMPTS if p not in used]
    pool = available or PROMPTS
    return rng.choice(pool)
