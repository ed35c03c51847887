"""GenConnect tutor/tutee matching and scheduling backend"""
