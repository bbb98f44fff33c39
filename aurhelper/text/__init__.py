"""Terminal colouring, formatting, logging and user prompts."""