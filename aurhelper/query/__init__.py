"""Searching, ranking and inspecting packages from the AUR and sync databases, and comparing versions."""