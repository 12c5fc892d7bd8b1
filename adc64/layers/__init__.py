"""Wire formats: MLink frames, register and memory requests, MStream fragments, MPD events."""