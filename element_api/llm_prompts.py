from __future__ import annotations

import json
from typing import Dict, List, Optional

_GUIDELINES = (
    "1. Generate clean, semantic HTML",
    "2. Use modern CSS with proper styling",
    "3. Make elements responsive when possible",
    "4. Use appropriate classes for styling",
    "5. Don't use external dependencies or frameworks",
    "6. Keep the code simple but visually appealing",
    "7. Use appropriate colors and spacing",
    "8. Make sure the code is ready to be inserted into a web page",
)


def build_system_prompt(element_type: Optional[str] = None) -> str:
    focus = f"Focus on creating a {element_type} element.\n\n" if element_type else ""
    shape = json.dumps(
        {
            "html": "your HTML code here",
            "css": "your CSS code here",
            "elementType": element_type or "generic",
        },
        indent=2,
    )
    return (
        "You are a web developer assistant that generates HTML and CSS code based on user descriptions.\n\n"
        "Guidelines:\n"
        + "\n".join(_GUIDELINES)
        + "\n\n"
        + focus
        + "Return your response in this exact JSON format:\n"
        + shape
        + "\n\nRespond with the JSON object only. No backticks. No explanations. "
        "Make sure the JSON is valid and properly escaped."
    )


def build_user_prompt(prompt: str) -> str:
    return f"Create a web element based on this description: {prompt}"


def build_messages(prompt: str, element_type: Optional[str] = None) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": build_system_prompt(element_type)},
        {"role": "user", "content": build_user_prompt(prompt)},
    ]
