"""
The MODEL layer contains pure data structures and simulation logic.
It has NO knowledge of the GUI (Qt) or the Visualization (PyVista).
It deals with Physics, Scene description and Animation.
"""
