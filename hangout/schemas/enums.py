from enum import Enum

class Gender(str, Enum):
    male = "male"
    female = "female"

class Orientation(str, Enum):
    straight = "straight"
    gay = "gay"
    bisexual = "bisexual"

class GatheringKind(str, Enum):
    event = "event"
    place = "place"

class CheckinStatus(str, Enum):
    checked_in = "checked_in"
    too_far = "too_far"
