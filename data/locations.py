# Reference geography used by the zone classifier.
# All names are stored normalised: lowercase, single spaces.

metro_cities = {
    "delhi",
    "new delhi",
    "mumbai",
    "bombay",
    "navi mumbai",
    "bangalore",
    "bengaluru",
    "chennai",
    "kolkata",
    "hyderabad",
    "secunderabad",
    "pune",
    "ahmedabad",
}

# destination states that are always priced as Special Zone
special_zone = {
    "arunachal pradesh",
    "assam",
    "manipur",
    "meghalaya",
    "mizoram",
    "nagaland",
    "tripura",
    "sikkim",
    "jammu and kashmir",
    "jammu & kashmir",
    "ladakh",
    "himachal pradesh",
    "andaman and nicobar islands",
    "andaman & nicobar islands",
    "andaman and nicobar",
    "lakshadweep",
}

state_regions = {
    # North
    "delhi": "north",
    "punjab": "north",
    "haryana": "north",
    "uttar pradesh": "north",
    "uttarakhand": "north",
    "himachal pradesh": "north",
    "jammu and kashmir": "north",
    "jammu & kashmir": "north",
    "chandigarh": "north",
    "ladakh": "north",
    # West
    "maharashtra": "west",
    "gujarat": "west",
    "rajasthan": "west",
    "goa": "west",
    "dadra and nagar haveli and daman and diu": "west",
    # South
    "karnataka": "south",
    "tamil nadu": "south",
    "kerala": "south",
    "andhra pradesh": "south",
    "telangana": "south",
    "puducherry": "south",
    "lakshadweep": "south",
    # East
    "west bengal": "east",
    "odisha": "east",
    "jharkhand": "east",
    "bihar": "east",
    "sikkim": "east",
    # Central
    "madhya pradesh": "central",
    "chhattisgarh": "central",
    # Northeast
    "assam": "northeast",
    "meghalaya": "northeast",
    "manipur": "northeast",
    "nagaland": "northeast",
    "tripura": "northeast",
    "mizoram": "northeast",
    "arunachal pradesh": "northeast",
    # Islands
    "andaman and nicobar islands": "islands",
    "andaman & nicobar islands": "islands",
    "andaman and nicobar": "islands",
}

# (zone, mode) -> delivery estimate label
delivery_estimates = {
    ("Within City", "Air"): "1-2 days",
    ("Within City", "Surface"): "2-3 days",
    ("Within State", "Air"): "2-3 days",
    ("Within State", "Surface"): "3-4 days",
    ("Within Region", "Air"): "2-3 days",
    ("Within Region", "Surface"): "4-5 days",
    ("Metro to Metro", "Air"): "2-3 days",
    ("Metro to Metro", "Surface"): "3-5 days",
    ("Rest of India", "Air"): "3-4 days",
    ("Rest of India", "Surface"): "4-6 days",
    ("Special Zone", "Air"): "4-5 days",
    ("Special Zone", "Surface"): "6-8 days",
}

default_delivery_estimate = "4-6 days"
