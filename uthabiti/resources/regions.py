"""Administrative hierarchy used to build and read membership numbers.

County codes follow the national county numbering; subcounty and ward codes are
positional within their parent.
"""

REGIONS: dict[str, dict] = {
    "Mombasa": {
        "code": "001",
        "subcounties": {
            "Changamwe": {
                "code": "001",
                "wards": {"Port Reitz": "01", "Kipevu": "02", "Airport": "03", "Changamwe": "04", "Chaani": "05"},
            },
            "Jomvu": {
                "code": "002",
                "wards": {"Jomvu Kuu": "01", "Miritini": "02", "Mikindani": "03"},
            },
            "Kisauni": {
                "code": "003",
                "wards": {"Mjambere": "01", "Junda": "02", "Bamburi": "03", "Mwakirunge": "04", "Mtopanga": "05"},
            },
            "Likoni": {
                "code": "004",
                "wards": {"Mtongwe": "01", "Shika Adabu": "02", "Bofu": "03", "Likoni": "04", "Timbwani": "05"},
            },
        },
    },
    "Kwale": {
        "code": "002",
        "subcounties": {
            "Msambweni": {
                "code": "001",
                "wards": {"Gombato Bongwe": "01", "Ukunda": "02", "Kinondo": "03", "Ramisi": "04"},
            },
            "Matuga": {
                "code": "002",
                "wards": {"Tsimba Golini": "01", "Waa": "02", "Tiwi": "03", "Kubo South": "04", "Mkongani": "05"},
            },
        },
    },
    "Machakos": {
        "code": "016",
        "subcounties": {
            "Machakos Town": {
                "code": "001",
                "wards": {"Kalama": "01", "Mua": "02", "Mutituni": "03", "Machakos Central": "04", "Mumbuni North": "05"},
            },
            "Mavoko": {
                "code": "002",
                "wards": {"Athi River": "01", "Kinanie": "02", "Muthwani": "03", "Syokimau/Mulolongo": "04"},
            },
        },
    },
    "Kiambu": {
        "code": "022",
        "subcounties": {
            "Thika Town": {
                "code": "001",
                "wards": {"Township": "01", "Kamenu": "02", "Hospital": "03", "Gatuanyaga": "04", "Ngoliba": "05"},
            },
            "Ruiru": {
                "code": "002",
                "wards": {"Gitothua": "01", "Biashara": "02", "Gatongora": "03", "Kahawa Sukari": "04", "Kahawa Wendani": "05"},
            },
            "Kikuyu": {
                "code": "003",
                "wards": {"Karai": "01", "Nachu": "02", "Sigona": "03", "Kikuyu": "04", "Kinoo": "05"},
            },
        },
    },
    "Nakuru": {
        "code": "032",
        "subcounties": {
            "Nakuru Town East": {
                "code": "001",
                "wards": {"Biashara": "01", "Kivumbini": "02", "Flamingo": "03", "Menengai": "04", "Nakuru East": "05"},
            },
            "Naivasha": {
                "code": "002",
                "wards": {"Biashara": "01", "Hells Gate": "02", "Lake View": "03", "Maai Mahiu": "04", "Olkaria": "05"},
            },
        },
    },
    "Kisumu": {
        "code": "042",
        "subcounties": {
            "Kisumu Central": {
                "code": "001",
                "wards": {"Railways": "01", "Migosi": "02", "Shaurimoyo Kaloleni": "03", "Market Milimani": "04", "Kondele": "05", "Nyalenda B": "06"},
            },
            "Kisumu East": {
                "code": "002",
                "wards": {"Kajulu": "01", "Kolwa East": "02", "Manyatta B": "03", "Nyalenda A": "04", "Kolwa Central": "05"},
            },
        },
    },
    "Nairobi": {
        "code": "047",
        "subcounties": {
            "Westlands": {
                "code": "001",
                "wards": {"Kitisuru": "01", "Parklands/Highridge": "02", "Karura": "03", "Kangemi": "04", "Mountain View": "05"},
            },
            "Kibra": {
                "code": "002",
                "wards": {"Laini Saba": "01", "Lindi": "02", "Makina": "03", "Woodley/Kenyatta Golf Course": "04", "Sarangombe": "05"},
            },
            "Embakasi East": {
                "code": "003",
                "wards": {"Upper Savannah": "01", "Lower Savannah": "02", "Embakasi": "03", "Utawala": "04", "Mihango": "05"},
            },
            "Kasarani": {
                "code": "004",
                "wards": {"Clay City": "01", "Mwiki": "02", "Kasarani": "03", "Njiru": "04", "Ruai": "05"},
            },
        },
    },
}
