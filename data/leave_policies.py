"""
Leave limits and the seed staff directory.
In production the directory lives in Snowflake; the seed is used by the
in-memory store for development and tests.
"""

LEAVE_LIMITS = {
    "Casual Leave": 15,
    "Duty Leave": 15,
    "Vacation Leave": 30,
    "Maternity Leave": 90,
    "Compensatory Leave": 365,
}

DEPARTMENTS = [
    "Civil Engineering",
    "Electrical & Electronics Engineering",
    "Computer Science & Engineering",
    "Basic Science & Humanities",
    "Physical Education",
]

DESIGNATIONS = [
    "Principal",
    "Director",
    "ERP Admin",
    "Head of Department",
    "Professor",
    "Associate Professor",
    "Assistant Professor",
    "Lab Instructor",
    "System Administrator",
    "Network Administrator",
    "Administrative Staff",
]

# Seed staff directory (in production, this is in Snowflake)
MOCK_STAFF = {
    "S001": {
        "id": "S001",
        "displayName": "Anita Menon",
        "email": "anita.menon@college.edu",
        "salutation": "Dr.",
        "department": "Computer Science & Engineering",
        "designation": "Assistant Professor",
        "role": "staff",
        "status": "Active",
        "dateOfJoining": "2019-07-01",
        "appointmentNo": "APT-1043",
    },
    "S002": {
        "id": "S002",
        "displayName": "Rahul Nair",
        "email": "rahul.nair@college.edu",
        "salutation": "Mr.",
        "department": "Civil Engineering",
        "designation": "Lab Instructor",
        "role": "staff",
        "status": "Active",
        "dateOfJoining": "2021-06-14",
        "appointmentNo": "APT-1177",
    },
    "H001": {
        "id": "H001",
        "displayName": "Suresh Kumar",
        "email": "suresh.kumar@college.edu",
        "salutation": "Dr.",
        "department": "Computer Science & Engineering",
        "designation": "Head of Department",
        "role": "hod",
        "status": "Active",
        "dateOfJoining": "2012-08-20",
        "appointmentNo": "APT-0611",
    },
    "D001": {
        "id": "D001",
        "displayName": "Meera Pillai",
        "email": "meera.pillai@college.edu",
        "salutation": "Dr.",
        "department": "Basic Science & Humanities",
        "designation": "Director",
        "role": "dir",
        "status": "Active",
        "dateOfJoining": "2008-01-02",
        "appointmentNo": "APT-0102",
    },
    "P001": {
        "id": "P001",
        "displayName": "Thomas George",
        "email": "thomas.george@college.edu",
        "salutation": "Dr.",
        "department": "Basic Science & Humanities",
        "designation": "Principal",
        "role": "princi",
        "status": "Active",
        "dateOfJoining": "2005-06-01",
        "appointmentNo": "APT-0007",
    },
    "A001": {
        "id": "A001",
        "displayName": "Office Admin",
        "email": "admin@college.edu",
        "salutation": "Mr.",
        "department": "Basic Science & Humanities",
        "designation": "ERP Admin",
        "role": "admin",
        "status": "Active",
        "dateOfJoining": "2015-03-10",
        "appointmentNo": "APT-0420",
    },
}


def get_leave_limit(leave_type: str):
    """Get the annual limit in days for a leave type, or None if unknown."""
    return LEAVE_LIMITS.get(leave_type)
